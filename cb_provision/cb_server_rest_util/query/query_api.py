from cb_provision.cb_server_rest_util.query.query_functions import \
    QueryFunctions


class QueryRestAPI(QueryFunctions):
    def __init__(self, endpoint, username, password, session=None,
                 **retry_values):
        super(QueryRestAPI, self).__init__()

        self.set_server_values(endpoint, username, password)
        self.set_endpoint_urls(endpoint)
        self.set_retry_values(**retry_values)
        self.query_session = session
