from cb_provision.cb_server_rest_util.cluster_nodes.cluster_init_provision \
    import ClusterInitializationProvision
from cb_provision.cb_server_rest_util.cluster_nodes.settings_and_connections \
    import SettingsAndConnectionsAPI
from cb_provision.cb_server_rest_util.cluster_nodes.status_and_events import \
    StatusAndEventsAPI


class ClusterRestAPI(ClusterInitializationProvision,
                     SettingsAndConnectionsAPI,
                     StatusAndEventsAPI):
    def __init__(self, endpoint, username, password, session=None,
                 **retry_values):
        """
        Main gateway for all Cluster Rest Operations
        """
        super(ClusterRestAPI, self).__init__()

        self.set_server_values(endpoint, username, password)
        self.set_endpoint_urls(endpoint)
        self.set_retry_values(**retry_values)
        self.session = session
