import pytest

from cb_provision import BucketSpec, ClusterSpec, CollectionSpec, \
    CouchbaseService, ProvisioningError, ProvisioningFailedError, ScopeSpec
from cb_provision.bucket_utils.bucket_ready_functions import \
    is_deferred_build, query_failed
from tests.fake_cluster import FakeCouchbaseNode

IDX_A = "CREATE INDEX idx_a ON `b1`.`s1`.`c1`(a)"
IDX_B = "CREATE INDEX idx_b ON `b1`.`s1`.`c1`(b)"


def collection_calls(node, bucket, scope, collection):
    """Calls touching one collection, as short labels, in issue order"""
    labels = list()
    quoted = "`%s`.`%s`.`%s`" % (bucket, scope, collection)
    field = 'keyspace_id = "%s"' % collection
    for call in node.calls:
        op = call[0]
        if op == "create_collection" and call[1:3] == (bucket, scope) \
                and call[3]["name"] == collection:
            labels.append("create")
        elif op == "run_query":
            statement = call[1]
            if "system:keyspaces" in statement \
                    and '`name` = "%s"' % collection in statement:
                labels.append("keyspace")
            elif statement.startswith("CREATE PRIMARY") \
                    and quoted in statement:
                labels.append("primary_ddl")
            elif statement.startswith("CREATE INDEX") \
                    and quoted in statement:
                labels.append("secondary_ddl")
            elif "system:indexes" in statement and field in statement:
                if "is_primary = true" in statement:
                    labels.append("primary_poll")
                else:
                    labels.append("secondary_poll")
    return labels


def squash(labels):
    squashed = list()
    for label in labels:
        if not squashed or squashed[-1] != label:
            squashed.append(label)
    return squashed


class TestBucketProvisioning:
    @pytest.mark.asyncio
    async def test_bucket_with_primary_index(self, make_provisioner, node,
                                             cluster_spec):
        spec = cluster_spec.with_bucket(BucketSpec("b1", quota=100))
        provisioner, _ = make_provisioner(spec, node)
        await provisioner.provision()

        assert node.calls_to("create_bucket") == [
            ("create_bucket", {"name": "b1", "ramQuotaMB": 100,
                               "flushEnabled": 0})]
        primaries = node.online_indexes("b1", is_primary=True)
        assert len(primaries) == 1
        assert primaries[0]["state"] == "online"

    @pytest.mark.asyncio
    async def test_bucket_without_primary_index(self, make_provisioner,
                                                node, cluster_spec):
        spec = cluster_spec \
            .with_bucket(BucketSpec("b1")) \
            .with_bucket(BucketSpec("b2", has_primary_index=False))
        provisioner, _ = make_provisioner(spec, node)
        await provisioner.provision()

        ddl = [call[1] for call in node.index_ddl_calls()]
        assert ddl == ["CREATE PRIMARY INDEX ON `b1`"]
        assert node.online_indexes("b2") == []

    @pytest.mark.asyncio
    async def test_waits_for_services_before_indexing(self, make_provisioner,
                                                      cluster_spec):
        node = FakeCouchbaseNode(services_lag=3)
        spec = cluster_spec.with_bucket(BucketSpec("b1"))
        provisioner, _ = make_provisioner(spec, node)
        await provisioner.provision()

        ops = node.ops()
        assert ops.count("get_bucket_services") == 4
        last_services_poll = len(ops) - 1 - ops[::-1].index(
            "get_bucket_services")
        assert ops.index("run_query") > last_services_poll

    @pytest.mark.asyncio
    async def test_collection_with_secondary_indexes_only(
            self, make_provisioner, node, cluster_spec):
        collection = CollectionSpec("c1", has_primary_index=False) \
            .with_secondary_index(IDX_A) \
            .with_secondary_index(IDX_B)
        bucket = BucketSpec("b1", has_primary_index=False) \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        secondaries = node.online_indexes("b1", "s1", "c1", is_primary=False)
        assert sorted(i["name"] for i in secondaries) == ["idx_a", "idx_b"]
        assert node.online_indexes("b1", "s1", "c1", is_primary=True) == []
        # Issued one by one, in the order given
        assert [call[1] for call in node.index_ddl_calls()] == [IDX_A, IDX_B]

    @pytest.mark.asyncio
    async def test_collection_steps_run_in_order(self, make_provisioner,
                                                 node, cluster_spec):
        collection = CollectionSpec("c1", max_ttl=30) \
            .with_secondary_index(IDX_A)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        assert squash(collection_calls(node, "b1", "s1", "c1")) == [
            "create", "keyspace", "primary_ddl", "primary_poll",
            "secondary_ddl", "secondary_poll"]
        _, _, _, params = node.calls_to("create_collection")[0]
        assert params == {"name": "c1", "maxTTL": 30}

    @pytest.mark.asyncio
    async def test_scope_created_before_its_collections(
            self, make_provisioner, node, cluster_spec):
        scope = ScopeSpec("s1") \
            .with_collection(CollectionSpec("c1")) \
            .with_collection(CollectionSpec("c2"))
        bucket = BucketSpec("b1").with_scope(scope)
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        ops = node.ops()
        assert ops.index("create_scope") < ops.index("create_collection")
        assert ops.index("create_bucket") < ops.index("create_scope")
        assert len(node.online_indexes("b1", "s1", "c1",
                                       is_primary=True)) == 1
        assert len(node.online_indexes("b1", "s1", "c2",
                                       is_primary=True)) == 1

    @pytest.mark.asyncio
    async def test_deferred_build_is_not_a_failure(self, make_provisioner,
                                                   cluster_spec):
        node = FakeCouchbaseNode(deferred_build=True)
        collection = CollectionSpec("c1").with_secondary_index(IDX_A)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        assert len(node.online_indexes("b1", is_primary=True)) == 1
        assert len(node.online_indexes("b1", "s1", "c1")) == 2

    @pytest.mark.asyncio
    async def test_no_index_calls_without_query_service(
            self, make_provisioner, node):
        collection = CollectionSpec("c1").with_secondary_index(IDX_A)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        spec = ClusterSpec(username="u", password="p",
                           services=[CouchbaseService.KV,
                                     CouchbaseService.INDEX]) \
            .with_bucket(bucket)
        provisioner, _ = make_provisioner(spec, node)
        await provisioner.provision()

        assert node.calls_to("run_query") == []
        assert ("b1", "s1", "c1") in node.collections

    @pytest.mark.asyncio
    async def test_buckets_provisioned_concurrently(self, make_provisioner,
                                                    node, cluster_spec):
        spec = cluster_spec \
            .with_bucket(BucketSpec("b1")) \
            .with_bucket(BucketSpec("b2"))
        provisioner, _ = make_provisioner(spec, node)
        await provisioner.provision()

        ops = node.ops()
        # Second bucket is created before the first one's index is online
        assert ops.count("create_bucket") == 2
        second_create = len(ops) - 1 - ops[::-1].index("create_bucket")
        assert second_create < ops.index("run_query")


class TestProvisioningFailures:
    @pytest.mark.asyncio
    async def test_failing_bucket_does_not_stop_siblings(
            self, make_provisioner, node, cluster_spec):
        node.failing_buckets.add("bad")
        good = BucketSpec("good").with_scope(
            ScopeSpec("s1").with_collection(CollectionSpec("c1")))
        spec = cluster_spec.with_bucket(BucketSpec("bad")).with_bucket(good)
        provisioner, _ = make_provisioner(spec, node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert excinfo.value.entities == ["bad"]
        assert "Could not create bucket" in str(excinfo.value)
        assert len(node.online_indexes("good", "s1", "c1",
                                       is_primary=True)) == 1

    @pytest.mark.asyncio
    async def test_failing_scope_skips_its_collections(
            self, make_provisioner, node, cluster_spec):
        node.failing_scopes.add(("b1", "s1"))
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(CollectionSpec("c1"))) \
            .with_scope(ScopeSpec("s2").with_collection(CollectionSpec("c2")))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert excinfo.value.entities == ["b1.s1"]
        created = [call[3]["name"]
                   for call in node.calls_to("create_collection")]
        assert created == ["c2"]

    @pytest.mark.asyncio
    async def test_index_ddl_failure_fails_collection(self, make_provisioner,
                                                      node, cluster_spec):
        node.failing_ddl.add(IDX_B)
        collection = CollectionSpec("c1", has_primary_index=False) \
            .with_secondary_index(IDX_A) \
            .with_secondary_index(IDX_B)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        failure = excinfo.value.failures[0]
        assert isinstance(failure, ProvisioningError)
        assert failure.entity == "b1.s1.c1"
        assert "Fatal error" in str(failure)

    @pytest.mark.asyncio
    async def test_index_never_online_times_out(self, make_provisioner,
                                                node, cluster_spec):
        node.never_online.add(IDX_A)
        collection = CollectionSpec("c1", has_primary_index=False) \
            .with_secondary_index(IDX_A)
        bucket = BucketSpec("b1", has_primary_index=False) \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node, convergence_timeout=10)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert excinfo.value.entities == ["b1.s1.c1"]
        assert "Timed out" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_all_failures_reported_together(self, make_provisioner,
                                                  node, cluster_spec):
        node.failing_buckets.update(["b1", "b2"])
        spec = cluster_spec \
            .with_bucket(BucketSpec("b1")) \
            .with_bucket(BucketSpec("b2"))
        provisioner, _ = make_provisioner(spec, node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert sorted(excinfo.value.entities) == ["b1", "b2"]


class TestIndexResponses:
    def test_deferred_build_message_detected(self):
        content = {"errors": [{"code": 5000,
                               "msg": "Build Already In Progress. Index "
                                      "creation will be retried in "
                                      "background."}]}
        assert is_deferred_build(content)

    def test_other_errors_are_not_deferred(self):
        assert not is_deferred_build(
            {"errors": [{"code": 12003, "msg": "Keyspace not found"}]})
        assert not is_deferred_build(None)

    def test_raw_text_deferred_build(self):
        assert is_deferred_build("Index creation will be retried in "
                                 "background")

    def test_ok_status_with_errors_is_a_failure(self):
        assert query_failed(True, {"errors": [{"code": 3000}]})
        assert not query_failed(True, {"results": [], "status": "success"})
        assert query_failed(False, "Service Unavailable")


class TestTransportFailuresDuringProvisioning:
    @pytest.mark.asyncio
    async def test_unreachable_bucket_reported_with_other_failures(
            self, make_provisioner, node, cluster_spec):
        node.unreachable_buckets.add("b_lost")
        node.failing_buckets.add("b_bad")
        spec = cluster_spec \
            .with_bucket(BucketSpec("b_lost")) \
            .with_bucket(BucketSpec("b_bad")) \
            .with_bucket(BucketSpec("b_ok"))
        provisioner, _ = make_provisioner(spec, node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert sorted(excinfo.value.entities) == ["b_bad", "b_lost"]
        assert "ChunkedEncodingError" in str(excinfo.value)
        assert len(node.online_indexes("b_ok", is_primary=True)) == 1

    @pytest.mark.asyncio
    async def test_polls_send_a_single_attempt(self, make_provisioner,
                                               node, cluster_spec):
        collection = CollectionSpec("c1").with_secondary_index(IDX_A)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        polled = {op for op, _ in node.attempt_limits}
        assert polled == {"cluster_info", "get_bucket_services", "run_query"}
        assert {limit for _, limit in node.attempt_limits} == {1}

    @pytest.mark.asyncio
    async def test_failed_error_carries_cluster_details(
            self, make_provisioner, node, cluster_spec):
        node.failing_buckets.add("b1")
        provisioner, _ = make_provisioner(
            cluster_spec.with_bucket(BucketSpec("b1")), node)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        cluster = excinfo.value.cluster
        assert cluster.connection_string == "couchbase://localhost:32013"
        assert cluster.username == "testUser"
        assert cluster.is_enterprise is True


class TestIndexCheckScope:
    @pytest.mark.asyncio
    async def test_sibling_collection_index_does_not_leak(
            self, make_provisioner, node, cluster_spec):
        stuck = "CREATE INDEX idx_z ON `b1`.`s1`.`c2`(z)"
        node.never_online.add(stuck)
        c1 = CollectionSpec("c1", has_primary_index=False) \
            .with_secondary_index(IDX_A) \
            .with_secondary_index(IDX_B)
        c2 = CollectionSpec("c2", has_primary_index=False) \
            .with_secondary_index(stuck)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(c1)
                        .with_collection(c2))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node, convergence_timeout=10)

        with pytest.raises(ProvisioningFailedError) as excinfo:
            await provisioner.provision()

        assert excinfo.value.entities == ["b1.s1.c2"]
        online = node.online_indexes("b1", "s1", "c1", is_primary=False)
        assert sorted(i["name"] for i in online) == ["idx_a", "idx_b"]

    @pytest.mark.asyncio
    async def test_catalogue_queries_filter_on_one_keyspace(
            self, make_provisioner, node, cluster_spec):
        collection = CollectionSpec("c1").with_secondary_index(IDX_A)
        bucket = BucketSpec("b1") \
            .with_scope(ScopeSpec("s1").with_collection(collection))
        provisioner, _ = make_provisioner(cluster_spec.with_bucket(bucket),
                                          node)
        await provisioner.provision()

        statements = {call[1] for call in node.calls_to("run_query")}
        in_collection = 'bucket_id = "b1" AND scope_id = "s1" ' \
                        'AND keyspace_id = "c1"'
        assert 'SELECT COUNT(*) > 0 AS present FROM system:keyspaces ' \
               'WHERE name = "b1" AND `bucket` IS MISSING' in statements
        assert 'SELECT COUNT(*) > 0 AS online FROM system:indexes ' \
               'WHERE keyspace_id = "b1" AND bucket_id IS MISSING ' \
               'AND is_primary = true AND state = "online"' in statements
        assert 'SELECT COUNT(*) > 0 AS online FROM system:indexes ' \
               'WHERE %s AND is_primary = true AND state = "online"' \
               % in_collection in statements
        assert 'SELECT name, state FROM system:indexes WHERE %s ' \
               'AND (is_primary IS MISSING OR is_primary = false)' \
               % in_collection in statements
        catalogue = [s for s in statements if "system:indexes" in s]
        assert all("bucket_id IS MISSING" in s or in_collection in s
                   for s in catalogue)
