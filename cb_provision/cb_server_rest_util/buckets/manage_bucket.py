from cb_provision.cb_server_rest_util.connection import CBRestConnection


class BucketManageAPI(CBRestConnection):
    def __init__(self):
        super(BucketManageAPI, self).__init__()

    def create_bucket(self, bucket_params):
        """
        POST :: /pools/default/buckets
        docs.couchbase.com/server/current/rest-api/rest-bucket-create.html
        :param bucket_params: {"name": .., "ramQuotaMB": .., "flushEnabled": ..}
        """
        api = f"{self.base_url}/pools/default/buckets"
        status, content, _ = self.request(api, self.POST,
                                          params=bucket_params)
        return status, content
