"""
https://docs.couchbase.com/server/current/rest-api/rest-cluster-init-and-provisioning.html
"""
from cb_provision.cb_server_rest_util.connection import CBRestConnection


class ClusterInitializationProvision(CBRestConnection):
    def __init__(self):
        super(ClusterInitializationProvision, self).__init__()

    def establish_credentials(self, username, password, port="SAME"):
        """
        POST /settings/web
        docs.couchbase.com/server/current/rest-api/rest-establish-credentials.html
        """
        api = self.base_url + "/settings/web"
        params = {"username": username,
                  "password": password,
                  "port": port}
        headers = self.create_headers(username, password)
        status, content, _ = self.request(api, CBRestConnection.POST,
                                          params, headers)
        return status, content

    def rename_node(self, hostname):
        """
        POST /node/controller/rename
        docs.couchbase.com/server/current/rest-api/rest-name-node.html
        """
        api = self.base_url + "/node/controller/rename"
        params = {"hostname": hostname}
        status, content, _ = self.request(api, CBRestConnection.POST,
                                          params)
        return status, content

    def configure_memory(self, mem_quota_dict):
        """
        POST /pools/default
        docs.couchbase.com/server/current/rest-api/rest-configure-memory.html
        :param mem_quota_dict: {"memoryQuota": 256, "indexMemoryQuota": 256..}
        """
        api = self.base_url + "/pools/default"
        status, content, _ = self.request(api, CBRestConnection.POST,
                                          mem_quota_dict)
        return status, content

    def setup_services(self, services):
        """
        POST /node/controller/setupServices
        docs.couchbase.com/server/current/rest-api/rest-set-up-services.html
        :param services: List of services to configure as string
        """
        api = self.base_url + "/node/controller/setupServices"
        params = {"services": ",".join(services)}
        status, content, _ = self.request(api, CBRestConnection.POST,
                                          params)
        return status, content
