from requests.utils import quote

from cb_provision.cb_server_rest_util.connection import CBRestConnection


class BucketInfo(CBRestConnection):
    def __init__(self):
        super(BucketInfo, self).__init__()

    def get_bucket_services(self, bucket_name, max_attempts=None):
        """
        GET :: /pools/default/b/<bucket_name>
        Terse bucket info. 'nodesExt' lists the services (with ports)
        each node currently exposes for the bucket
        """
        bucket_name = quote(bucket_name)
        api = self.base_url + f"/pools/default/b/{bucket_name}"
        status, content, _ = self.request(api, self.GET,
                                          max_attempts=max_attempts)
        return status, content
