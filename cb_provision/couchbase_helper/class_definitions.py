import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from cb_provision.bucket_lib.bucket import BucketSpec, keyed_by_name
from cb_provision.cb_constants import CbServer, CouchbaseService, \
    DEFAULT_SERVICES


def _random_password():
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ClusterSpec:
    """
    Everything the provisioner needs to know about the single node cluster.

    `is_enterprise` stays None until the node reports its edition. The
    provisioner records it once through with_edition(), which hands back
    a new spec and refuses to overwrite an edition already recorded.
    """
    username: str = CbServer.default_username
    password: str = field(default_factory=_random_password, repr=False)
    services: FrozenSet[CouchbaseService] = DEFAULT_SERVICES
    service_quotas: Mapping[CouchbaseService, int] = field(
        default_factory=dict, hash=False)
    buckets: Mapping[str, BucketSpec] = field(default_factory=dict,
                                              hash=False)
    is_enterprise: Optional[bool] = None

    def __post_init__(self):
        object.__setattr__(self, "services", frozenset(self.services))
        for service, quota in self.service_quotas.items():
            if not service.has_quota:
                raise ValueError("The provided service %s has no quota to "
                                 "configure" % service.name)
            if quota < service.minimum_quota_mb:
                raise ValueError(
                    "The custom quota (%s) must not be smaller than the "
                    "minimum quota for the service (%s)"
                    % (quota, service.minimum_quota_mb))
        object.__setattr__(self, "service_quotas",
                           MappingProxyType(dict(self.service_quotas)))
        object.__setattr__(self, "buckets", keyed_by_name(self.buckets))

    def has_service(self, service):
        return service in self.services

    def with_credentials(self, username, password):
        return replace(self, username=username, password=password)

    def with_services(self, services):
        return replace(self, services=frozenset(services))

    def with_analytics_service(self):
        return replace(self,
                       services=self.services | {CouchbaseService.ANALYTICS})

    def with_eventing_service(self):
        return replace(self,
                       services=self.services | {CouchbaseService.EVENTING})

    def with_service_quota(self, service, quota_mb):
        quotas = dict(self.service_quotas)
        quotas[service] = quota_mb
        return replace(self, service_quotas=quotas)

    def with_bucket(self, bucket):
        """Adding a bucket with an existing name replaces the former"""
        buckets = dict(self.buckets)
        buckets[bucket.name] = bucket
        return replace(self, buckets=buckets)

    def with_edition(self, is_enterprise):
        if self.is_enterprise is not None:
            raise ValueError("Cluster edition already recorded as %s"
                             % self.edition)
        return replace(self, is_enterprise=bool(is_enterprise))

    @property
    def edition(self):
        if self.is_enterprise is None:
            return None
        return "enterprise" if self.is_enterprise else "community"

    def quota_for(self, service):
        """Custom quota if configured, else the service minimum"""
        return self.service_quotas.get(service, service.minimum_quota_mb)


@dataclass(frozen=True)
class NodeEndpoint:
    """
    Where the node can be reached from the test process.

    :param host: hostname the host side uses to reach the container
    :param ip_address: container address inside its network, used as the
                       node's internal hostname
    :param mapped_ports: internal port -> host side port
    """
    host: str
    ip_address: str
    mapped_ports: Mapping[int, int] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "mapped_ports",
                           MappingProxyType({int(k): int(v) for k, v
                                             in self.mapped_ports.items()}))

    def mapped_port(self, internal_port):
        return self.mapped_ports.get(internal_port, internal_port)


@dataclass(frozen=True)
class ProvisionedCluster:
    """Connection details handed back once the cluster is usable"""
    endpoint: NodeEndpoint
    username: str
    password: str = field(repr=False)
    is_enterprise: bool = False

    @property
    def host(self):
        return self.endpoint.host

    @property
    def bootstrap_carrier_direct_port(self):
        return self.endpoint.mapped_port(CbServer.memcached_port)

    @property
    def bootstrap_http_direct_port(self):
        return self.endpoint.mapped_port(CbServer.port)

    @property
    def connection_string(self):
        return "couchbase://%s:%s" % (self.host,
                                      self.bootstrap_carrier_direct_port)


class ProvisionContext(object):
    """
    Working state owned by the provisioner for the duration of one run.
    Handed by reference to the cluster / bucket helpers.

    `spec` is replaced exactly once, when the edition is discovered,
    before any bucket work starts.
    """
    def __init__(self, spec, endpoint, rest, retry_strategy,
                 node_online_timeout, convergence_timeout):
        self.spec = spec
        self.endpoint = endpoint
        self.rest = rest
        self.retry_strategy = retry_strategy
        self.node_online_timeout = node_online_timeout
        self.convergence_timeout = convergence_timeout
        self.state = None

    def record_edition(self, is_enterprise):
        self.spec = self.spec.with_edition(is_enterprise)

    @property
    def is_enterprise(self):
        return bool(self.spec.is_enterprise)

    def has_service(self, service):
        return self.spec.has_service(service)
