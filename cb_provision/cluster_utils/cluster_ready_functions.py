"""
Single node cluster bootstrap.

Phases run strictly one after the other, each only once the previous
one succeeded:
  OFFLINE -> ONLINE -> EDITION_KNOWN -> RENAMED -> SERVICES_INITIALIZED
  -> QUOTAS_SET -> ADMIN_CONFIGURED -> EXTERNAL_PORTS_CONFIGURED
  -> (INDEXER_CONFIGURED if the index service is enabled) -> READY
"""
import logging
from enum import Enum

from cb_provision.cb_constants import CbServer, CouchbaseService
from cb_provision.common_lib import run_blocking, time_phase
from cb_provision.custom_exceptions.exception import ConfigurationError, \
    ConnectivityError, EditionMismatchError, ServerUnavailableException
from cb_provision.tasks.retry_strategy import TIMED_OUT


class BootstrapState(Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    EDITION_KNOWN = "edition_known"
    RENAMED = "renamed"
    SERVICES_INITIALIZED = "services_initialized"
    QUOTAS_SET = "quotas_set"
    ADMIN_CONFIGURED = "admin_configured"
    EXTERNAL_PORTS_CONFIGURED = "external_ports_configured"
    INDEXER_CONFIGURED = "indexer_configured"
    READY = "ready"


class ClusterUtils(object):
    def __init__(self, context):
        self.context = context
        self.rest = context.rest
        self.log = logging.getLogger("provision")

    def _enter(self, state):
        self.log.debug("Cluster bootstrap state: %s" % state.value)
        self.context.state = state

    @staticmethod
    def _check(status, content, err_msg):
        if not status:
            raise ConfigurationError("%s: %s" % (err_msg, content), content)

    async def configure_cluster(self):
        """
        Prepares the node for data. Raises on the first failing phase,
        nothing bucket related has been attempted at that point.
        """
        self._enter(BootstrapState.OFFLINE)
        self.rest.activate_service_api(self.context.spec.services)

        pools = await time_phase("wait_for_node_online",
                                 self.wait_for_node_online)
        self._enter(BootstrapState.ONLINE)

        await time_phase("initialize_edition",
                         self.initialize_edition, pools)
        self._enter(BootstrapState.EDITION_KNOWN)

        await time_phase("rename_node", self.rename_node)
        self._enter(BootstrapState.RENAMED)

        await time_phase("initialize_services", self.initialize_services)
        self._enter(BootstrapState.SERVICES_INITIALIZED)

        await time_phase("set_memory_quotas", self.set_memory_quotas)
        self._enter(BootstrapState.QUOTAS_SET)

        await time_phase("configure_admin_user", self.configure_admin_user)
        self._enter(BootstrapState.ADMIN_CONFIGURED)

        await time_phase("configure_external_ports",
                         self.configure_external_ports)
        self._enter(BootstrapState.EXTERNAL_PORTS_CONFIGURED)

        if self.context.has_service(CouchbaseService.INDEX):
            await time_phase("configure_indexer", self.configure_indexer)
            self._enter(BootstrapState.INDEXER_CONFIGURED)

        self._enter(BootstrapState.READY)

    async def wait_for_node_online(self):
        """
        Poll GET /pools until ns_server answers with 2xx
        :return: /pools content, which also carries the edition
        """
        async def probe():
            try:
                return await run_blocking(self.rest.cluster.cluster_info,
                                          max_attempts=1)
            except ServerUnavailableException as e:
                self.log.debug("Node not reachable yet: %s" % e)
                return False, None

        result = await self.context.retry_strategy.retry_until(
            probe,
            lambda result: result[0],
            lambda: TIMED_OUT,
            self.context.node_online_timeout)
        if result is TIMED_OUT:
            raise ConnectivityError(
                "Node %s:%s not online within %s seconds"
                % (self.context.endpoint.host,
                   self.context.endpoint.mapped_port(CbServer.port),
                   self.context.node_online_timeout))
        return result[1]

    async def initialize_edition(self, pools):
        """
        Records the edition (enterprise or community) reported by the node
        and rejects services the edition cannot run
        """
        is_enterprise = False
        if isinstance(pools, dict):
            is_enterprise = bool(pools.get("isEnterprise", False))
        self.context.record_edition(is_enterprise)
        self.log.debug("Node runs %s edition" % self.context.spec.edition)

        if not is_enterprise:
            for service in CouchbaseService:
                if service.requires_enterprise \
                        and self.context.has_service(service):
                    raise EditionMismatchError(
                        "The %s Service is only supported with the "
                        "Enterprise version" % service.name.capitalize())

    async def rename_node(self):
        """
        Bind the internal hostname to the container IP so that it differs
        from the external (alternate) address the SDK is handed
        """
        new_host = self.context.endpoint.ip_address
        self.log.debug("Renaming Couchbase node from localhost to %s"
                       % new_host)
        status, content = await run_blocking(self.rest.cluster.rename_node,
                                             new_host)
        self._check(status, content, "Could not rename node to %s" % new_host)

    def service_identifiers(self):
        return [service.identifier for service in CouchbaseService
                if self.context.has_service(service)]

    async def initialize_services(self):
        services = self.service_identifiers()
        self.log.debug("Initializing couchbase services on host: %s"
                       % ",".join(services))
        status, content = await run_blocking(
            self.rest.cluster.setup_services, services)
        self._check(status, content, "Could not enable couchbase services")

    def memory_quotas(self):
        quotas = dict()
        for service in CouchbaseService:
            if not self.context.has_service(service) \
                    or not service.has_quota:
                continue
            quotas[service.quota_param] = self.context.spec.quota_for(service)
        return quotas

    async def set_memory_quotas(self):
        """
        Custom quota when one was configured for the service,
        the service's minimum quota otherwise
        """
        quotas = self.memory_quotas()
        self.log.debug("Service memory quotas: %s" % quotas)
        status, content = await run_blocking(
            self.rest.cluster.configure_memory, quotas)
        self._check(status, content,
                    "Could not configure service memory quotas")

    async def configure_admin_user(self):
        # Every call after this one authenticates with these credentials
        spec = self.context.spec
        self.log.debug("Configuring couchbase admin user with username: %s"
                       % spec.username)
        status, content = await run_blocking(
            self.rest.cluster.establish_credentials,
            spec.username, spec.password)
        self._check(status, content, "Could not configure couchbase admin user")

    def alternate_ports(self):
        endpoint = self.context.endpoint
        ports = {"mgmt": endpoint.mapped_port(CbServer.port),
                 "mgmtSSL": endpoint.mapped_port(CbServer.ssl_port)}
        for service in CouchbaseService:
            if not self.context.has_service(service):
                continue
            for field, internal_port in service.alternate_ports:
                ports[field] = endpoint.mapped_port(internal_port)
        return ports

    async def configure_external_ports(self):
        """
        Internal ports are not reachable from outside the container, so the
        external alternate address advertises the mapped ones. The SDK picks
        these up and connects to them.
        """
        self.log.debug("Mapping external ports to the alternate address "
                       "configuration")
        status, content = await run_blocking(
            self.rest.cluster.manage_alternate_address,
            self.context.endpoint.host, self.alternate_ports())
        self._check(status, content, "Could not configure external ports")

    async def configure_indexer(self):
        self.log.debug("Configuring the indexer service")
        if self.context.is_enterprise:
            storage_mode = CbServer.IndexerStorageMode.MEMORY_OPTIMIZED
        else:
            storage_mode = CbServer.IndexerStorageMode.FORESTDB
        status, content = await run_blocking(
            self.rest.index.set_gsi_settings, storage_mode)
        self._check(status, content,
                    "Could not configure the indexing service")
