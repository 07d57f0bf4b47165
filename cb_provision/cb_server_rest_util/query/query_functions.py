"""
https://docs.couchbase.com/server/current/n1ql-rest-query/index.html
"""

from cb_provision.cb_server_rest_util.connection import CBRestConnection


class QueryFunctions(CBRestConnection):
    def __init__(self):
        super(QueryFunctions, self).__init__()

    def run_query(self, statement, timeout=None, max_attempts=None):
        """
        POST :: /query/service
        docs.couchbase.com/server/current/n1ql-rest-query/index.html

        :param statement: N1QL statement, sent as form data
        :param timeout: Request timeout in seconds
        :param max_attempts: Transport attempts, defaults to the connection's
        :return: status, content (dict with 'results' / 'errors')
        """
        api = self.query_url + "/query/service"
        status, content, _ = self.request(api, self.POST,
                                          params={"statement": statement},
                                          timeout=timeout,
                                          session=self.query_session,
                                          max_attempts=max_attempts)
        return status, content

    @staticmethod
    def get_rows(content):
        """Rows from a /query/service response, [] when absent"""
        if isinstance(content, dict):
            return content.get("results") or []
        return []
