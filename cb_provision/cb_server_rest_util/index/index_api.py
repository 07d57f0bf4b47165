from cb_provision.cb_server_rest_util.index.index_settings import \
    IndexSettings


class IndexRestAPI(IndexSettings):
    def __init__(self, endpoint, username, password, session=None,
                 **retry_values):
        super(IndexRestAPI, self).__init__()

        self.set_server_values(endpoint, username, password)
        self.set_endpoint_urls(endpoint)
        self.set_retry_values(**retry_values)
        self.session = session
