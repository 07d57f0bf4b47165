from enum import Enum


class CbServer(object):
    class Services(object):
        KV = "kv"
        INDEX = "index"
        N1QL = "n1ql"
        CBAS = "cbas"
        FTS = "fts"
        EVENTING = "eventing"

        @classmethod
        def enterprise_only(cls):
            return [CbServer.Services.CBAS,
                    CbServer.Services.EVENTING]

    class Settings(object):
        KV_MEM_QUOTA = "memoryQuota"

        class MinRAMQuota(object):
            KV = 256
            INDEX = 256
            FTS = 256
            EVENTING = 256
            CBAS = 1024
            BUCKET = 100

    class IndexerStorageMode(object):
        MEMORY_OPTIMIZED = "memory_optimized"
        FORESTDB = "forestdb"

    port = 8091
    capi_port = 8092
    n1ql_port = 8093
    fts_port = 8094
    cbas_port = 8095
    eventing_port = 8096
    memcached_port = 11210

    ssl_port = 18091
    ssl_capi_port = 18092
    ssl_n1ql_port = 18093
    ssl_fts_port = 18094
    ssl_cbas_port = 18095
    ssl_eventing_port = 18096
    ssl_memcached_port = 11207

    default_username = "Administrator"

    # Convergence polling (seconds)
    poll_interval = 1
    node_online_timeout = 60
    convergence_timeout = 60

    # Transport level retry (attempts, seconds)
    rest_max_attempts = 60
    rest_retry_delay = 1
    rest_timeout = 30

    deferred_build_msg = "Index creation will be retried in background"

    @staticmethod
    def exposed_ports():
        return [CbServer.port, CbServer.ssl_port,
                CbServer.capi_port, CbServer.ssl_capi_port,
                CbServer.n1ql_port, CbServer.ssl_n1ql_port,
                CbServer.fts_port, CbServer.ssl_fts_port,
                CbServer.cbas_port, CbServer.ssl_cbas_port,
                CbServer.eventing_port, CbServer.ssl_eventing_port,
                CbServer.memcached_port, CbServer.ssl_memcached_port]


class CouchbaseService(Enum):
    """
    Services which can be enabled on the provisioned node.
    Value is the identifier understood by ns_server.
    """
    KV = CbServer.Services.KV
    QUERY = CbServer.Services.N1QL
    SEARCH = CbServer.Services.FTS
    INDEX = CbServer.Services.INDEX
    ANALYTICS = CbServer.Services.CBAS
    EVENTING = CbServer.Services.EVENTING

    @property
    def identifier(self):
        return self.value

    @property
    def minimum_quota_mb(self):
        return _MIN_QUOTA[self]

    @property
    def has_quota(self):
        return self.minimum_quota_mb > 0

    @property
    def requires_enterprise(self):
        return self.value in CbServer.Services.enterprise_only()

    @property
    def quota_param(self):
        """Form field used by POST /pools/default for this service"""
        if self is CouchbaseService.KV:
            return CbServer.Settings.KV_MEM_QUOTA
        return "%sMemoryQuota" % self.identifier

    @property
    def alternate_ports(self):
        """
        (field, internal port) pairs registered as the external
        alternate address when this service is enabled
        """
        return _ALTERNATE_PORTS[self]


_MIN_QUOTA = {
    CouchbaseService.KV: CbServer.Settings.MinRAMQuota.KV,
    # Query service has no memory quota
    CouchbaseService.QUERY: 0,
    CouchbaseService.SEARCH: CbServer.Settings.MinRAMQuota.FTS,
    CouchbaseService.INDEX: CbServer.Settings.MinRAMQuota.INDEX,
    CouchbaseService.ANALYTICS: CbServer.Settings.MinRAMQuota.CBAS,
    CouchbaseService.EVENTING: CbServer.Settings.MinRAMQuota.EVENTING,
}

_ALTERNATE_PORTS = {
    CouchbaseService.KV: [("kv", CbServer.memcached_port),
                          ("kvSSL", CbServer.ssl_memcached_port),
                          ("capi", CbServer.capi_port),
                          ("capiSSL", CbServer.ssl_capi_port)],
    CouchbaseService.QUERY: [("n1ql", CbServer.n1ql_port),
                             ("n1qlSSL", CbServer.ssl_n1ql_port)],
    CouchbaseService.SEARCH: [("fts", CbServer.fts_port),
                              ("ftsSSL", CbServer.ssl_fts_port)],
    CouchbaseService.INDEX: [],
    CouchbaseService.ANALYTICS: [("cbas", CbServer.cbas_port),
                                 ("cbasSSL", CbServer.ssl_cbas_port)],
    CouchbaseService.EVENTING: [("eventingAdminPort", CbServer.eventing_port),
                                ("eventingSSL", CbServer.ssl_eventing_port)],
}

DEFAULT_SERVICES = frozenset([CouchbaseService.KV,
                              CouchbaseService.QUERY,
                              CouchbaseService.SEARCH,
                              CouchbaseService.INDEX])
