"""
https://docs.couchbase.com/server/current/rest-api/rest-set-up-alternate-address.html
"""
from cb_provision.cb_server_rest_util.connection import CBRestConnection


class SettingsAndConnectionsAPI(CBRestConnection):
    def __init__(self):
        super(SettingsAndConnectionsAPI, self).__init__()

    def manage_alternate_address(self, alternate_addr, alternate_ports=None):
        """
        PUT /node/controller/setupAlternateAddresses/external
        https://docs.couchbase.com/server/current/rest-api/rest-set-up-alternate-address.html
        :param alternate_addr: Hostname the SDK should use from outside
        :param alternate_ports: dict of {"kv": 32768, "kvSSL": 32769, ..}
        """
        api = self.base_url \
            + '/node/controller/setupAlternateAddresses/external'
        params = {"hostname": alternate_addr}
        if alternate_ports:
            for service, port in alternate_ports.items():
                params[service] = port
        status, content, _ = self.request(api, CBRestConnection.PUT, params)
        return status, content
