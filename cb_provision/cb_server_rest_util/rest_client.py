import requests

from cb_provision.cb_constants import CouchbaseService
from cb_provision.cb_server_rest_util.buckets.buckets_api import BucketRestApi
from cb_provision.cb_server_rest_util.cluster_nodes.cluster_nodes_api import \
    ClusterRestAPI
from cb_provision.cb_server_rest_util.index.index_api import IndexRestAPI
from cb_provision.cb_server_rest_util.query.query_api import QueryRestAPI


class RestConnection(object):
    """
    Control plane client for a single node.

    Cluster, bucket and index calls share one session on the management
    port. Query calls go through a second session on the query port.
    """
    def __init__(self, endpoint, username, password, **retry_values):
        self.endpoint = endpoint
        self.username = username
        self.password = password
        self.retry_values = retry_values

        self.session = requests.Session()
        self.query_session = requests.Session()

        self.cluster = ClusterRestAPI(endpoint, username, password,
                                      self.session, **retry_values)
        self.bucket = BucketRestApi(endpoint, username, password,
                                    self.session, **retry_values)

        self.index = None
        self.query = None

    def activate_service_api(self, service_list):
        if CouchbaseService.INDEX in service_list:
            self.index = IndexRestAPI(self.endpoint, self.username,
                                      self.password, self.session,
                                      **self.retry_values)
        if CouchbaseService.QUERY in service_list:
            self.query = QueryRestAPI(self.endpoint, self.username,
                                      self.password, self.query_session,
                                      **self.retry_values)

    def close(self):
        self.session.close()
        self.query_session.close()
