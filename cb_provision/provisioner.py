import asyncio
import logging

from cb_provision.bucket_utils.bucket_ready_functions import BucketUtils
from cb_provision.cb_constants import CbServer
from cb_provision.cb_server_rest_util.rest_client import RestConnection
from cb_provision.cluster_utils.cluster_ready_functions import ClusterUtils
from cb_provision.common_lib import time_phase
from cb_provision.couchbase_helper.class_definitions import \
    ProvisionContext, ProvisionedCluster
from cb_provision.custom_exceptions.exception import \
    ProvisioningFailedError
from cb_provision.tasks.retry_strategy import IntervalRetryStrategy


class ClusterProvisioner(object):
    """
    Configures a freshly started single node Couchbase Server and creates
    the buckets, scopes, collections and indexes described by `spec`.

    Usage:
        endpoint = NodeEndpoint(host="localhost", ip_address="172.17.0.2",
                                mapped_ports={8091: 32768, ...})
        cluster = await ClusterProvisioner(spec, endpoint).provision()
        cluster.connection_string
    """

    def __init__(self, spec, endpoint,
                 poll_interval=CbServer.poll_interval,
                 node_online_timeout=CbServer.node_online_timeout,
                 convergence_timeout=CbServer.convergence_timeout,
                 max_attempts=CbServer.rest_max_attempts,
                 retry_delay=CbServer.rest_retry_delay,
                 request_timeout=CbServer.rest_timeout,
                 rest=None, retry_strategy=None):
        self.spec = spec
        self.endpoint = endpoint
        self.node_online_timeout = node_online_timeout
        self.convergence_timeout = convergence_timeout
        self.retry_strategy = retry_strategy \
            or IntervalRetryStrategy(poll_interval)
        self._owns_rest = rest is None
        self.rest = rest or RestConnection(
            endpoint, spec.username, spec.password,
            max_attempts=max_attempts, retry_delay=retry_delay,
            timeout=request_timeout)
        self.context = None
        self.log = logging.getLogger("provision")

    async def provision(self):
        """
        Bootstrap the node, then provision every bucket.

        Bootstrap failures (ConnectivityError, EditionMismatchError,
        ConfigurationError) are raised before any bucket is touched.
        Bucket level failures are raised as a single
        ProvisioningFailedError once all buckets have settled, its
        `cluster` attribute holds the ProvisionedCluster.
        :return: ProvisionedCluster
        """
        self.context = ProvisionContext(
            self.spec, self.endpoint, self.rest, self.retry_strategy,
            self.node_online_timeout, self.convergence_timeout)
        try:
            await time_phase("configure_cluster",
                             ClusterUtils(self.context).configure_cluster)
            await time_phase("create_buckets",
                             BucketUtils(self.context).create_buckets)
        except ProvisioningFailedError as e:
            # Bootstrap succeeded, the node is usable for what did get created
            e.cluster = self.provisioned_cluster()
            raise
        finally:
            if self._owns_rest:
                self.rest.close()

        self.log.info("Cluster ready at %s (%s edition)"
                      % (self.endpoint.host, self.context.spec.edition))
        return self.provisioned_cluster()

    def provisioned_cluster(self):
        return ProvisionedCluster(self.endpoint,
                                  self.context.spec.username,
                                  self.context.spec.password,
                                  self.context.is_enterprise)


def provision_cluster(spec, endpoint, **kwargs):
    """Blocking wrapper around ClusterProvisioner.provision()"""
    return asyncio.run(ClusterProvisioner(spec, endpoint, **kwargs).provision())
