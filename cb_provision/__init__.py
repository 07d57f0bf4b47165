from cb_provision.bucket_lib.bucket import BucketSpec, CollectionSpec, \
    ScopeSpec
from cb_provision.cb_constants import CbServer, CouchbaseService
from cb_provision.couchbase_helper.class_definitions import ClusterSpec, \
    NodeEndpoint, ProvisionedCluster
from cb_provision.custom_exceptions.exception import CbProvisionException, \
    ConfigurationError, ConnectivityError, EditionMismatchError, \
    ProvisioningError, ProvisioningFailedError, ServerUnavailableException
from cb_provision.provisioner import ClusterProvisioner, provision_cluster
from cb_provision.tasks.retry_strategy import IntervalRetryStrategy

__all__ = [
    "BucketSpec", "CollectionSpec", "ScopeSpec", "ClusterSpec",
    "NodeEndpoint", "ProvisionedCluster", "CbServer", "CouchbaseService",
    "CbProvisionException", "ConfigurationError", "ConnectivityError",
    "EditionMismatchError", "ProvisioningError", "ProvisioningFailedError",
    "ServerUnavailableException", "ClusterProvisioner", "provision_cluster",
    "IntervalRetryStrategy",
]
