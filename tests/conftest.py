"""
Shared fixtures: a fake node, a fake clock and a provisioner wired to both.
"""
import pytest

from cb_provision import ClusterProvisioner, ClusterSpec, CouchbaseService, \
    IntervalRetryStrategy, NodeEndpoint
from tests.fake_cluster import FakeClock, FakeCouchbaseNode, \
    FakeRestConnection

MAPPED_PORTS = {8091: 32001, 18091: 32002, 8092: 32003, 18092: 32004,
                8093: 32005, 18093: 32006, 8094: 32007, 18094: 32008,
                8095: 32009, 18095: 32010, 8096: 32011, 18096: 32012,
                11210: 32013, 11207: 32014}

KV_QUERY_INDEX = [CouchbaseService.KV, CouchbaseService.QUERY,
                  CouchbaseService.INDEX]


@pytest.fixture
def endpoint():
    return NodeEndpoint(host="localhost", ip_address="172.17.0.2",
                        mapped_ports=MAPPED_PORTS)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def node():
    return FakeCouchbaseNode()


@pytest.fixture
def cluster_spec():
    return ClusterSpec(username="testUser", password="testPassword",
                       services=KV_QUERY_INDEX)


@pytest.fixture
def make_provisioner(endpoint, fake_clock):
    """
    Usage:
        provisioner, rest = make_provisioner(spec, node)
        await provisioner.provision()
    """
    def _make(spec, fake_node, **kwargs):
        rest = FakeRestConnection(fake_node)
        retry = IntervalRetryStrategy(1, clock=fake_clock,
                                      sleep=fake_clock.sleep)
        provisioner = ClusterProvisioner(spec, endpoint, rest=rest,
                                         retry_strategy=retry, **kwargs)
        return provisioner, rest
    return _make
