from cb_provision.cb_server_rest_util.buckets.bucket_info import BucketInfo
from cb_provision.cb_server_rest_util.buckets.manage_bucket import \
    BucketManageAPI
from cb_provision.cb_server_rest_util.buckets.scope_and_collections import \
    ScopeAndCollectionsAPI


class BucketRestApi(BucketManageAPI, BucketInfo, ScopeAndCollectionsAPI):
    def __init__(self, endpoint, username, password, session=None,
                 **retry_values):
        super(BucketRestApi, self).__init__()

        self.set_server_values(endpoint, username, password)
        self.set_endpoint_urls(endpoint)
        self.set_retry_values(**retry_values)
        self.session = session
