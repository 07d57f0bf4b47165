"""
https://docs.couchbase.com/server/current/rest-api/rest-cluster-get.html
"""
from cb_provision.cb_server_rest_util.connection import CBRestConnection


class StatusAndEventsAPI(CBRestConnection):
    def __init__(self):
        super(StatusAndEventsAPI, self).__init__()

    def cluster_info(self, max_attempts=None):
        """
        GET :: /pools
        docs.couchbase.com/server/current/rest-api/rest-cluster-get.html
        Carries 'isEnterprise' used to detect the node's edition
        """
        api = self.base_url + "/pools"
        status, content, _ = self.request(api, self.GET,
                                          max_attempts=max_attempts)
        return status, content
