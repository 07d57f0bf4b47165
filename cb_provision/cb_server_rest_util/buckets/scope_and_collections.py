from requests.utils import quote

from cb_provision.cb_server_rest_util.connection import CBRestConnection


class ScopeAndCollectionsAPI(CBRestConnection):
    def __init__(self):
        super(ScopeAndCollectionsAPI, self).__init__()

    def create_scope(self, bucket_name, scope_name):
        """
        docs.couchbase.com/server/current/rest-api/creating-a-scope.html
        POST :: /pools/default/buckets/<bucket_name>/scopes
        """
        bucket_name = quote(bucket_name)
        api = self.base_url + f"/pools/default/buckets/{bucket_name}/scopes"
        status, content, _ = self.request(api, self.POST,
                                          params={"name": scope_name})
        return status, content

    def create_collection(self, bucket_name, scope_name, collection_spec):
        """
        docs.couchbase.com/server/current/rest-api/creating-a-collection.html
        POST :: /pools/default/buckets/<bucket_name>/scopes/<scope_name>/collections
        :param collection_spec: {"name": .., "maxTTL": ..}
        """
        bucket_name = quote(bucket_name)
        scope_name = quote(scope_name)
        api = self.base_url + "/pools/default/buckets" \
            + f"/{bucket_name}/scopes/{scope_name}/collections"
        status, content, _ = self.request(api, self.POST,
                                          params=collection_spec)
        return status, content
