"""
https://docs.couchbase.com/server/current/rest-api/rest-index-service.html
"""

from cb_provision.cb_server_rest_util.connection import CBRestConnection


class IndexSettings(CBRestConnection):
    def __init__(self):
        super(IndexSettings, self).__init__()

    def set_gsi_settings(self, storage_mode):
        """
        POST :: /settings/indexes
        docs.couchbase.com/server/current/rest-api/post-settings-indexes.html
        :param storage_mode: memory_optimized (EE only) / forestdb / plasma
        """
        api = self.base_url + '/settings/indexes'
        status, content, _ = self.request(api, self.POST,
                                          {'storageMode': storage_mode})
        return status, content
