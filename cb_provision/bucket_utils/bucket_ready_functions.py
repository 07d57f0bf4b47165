"""
Bucket / scope / collection / index provisioning on a bootstrapped node.

Buckets are provisioned concurrently, each bucket's scopes concurrently,
each scope's collections concurrently. Inside one collection the order is
fixed: create -> keyspace visible -> primary index -> secondary indexes.

A failing entity never cancels its siblings. Each level waits for all of
its children and reports the failed ones together through
ProvisioningFailedError.
"""
import logging

from cb_provision.cb_constants import CbServer, CouchbaseService
from cb_provision.cb_server_rest_util.query.query_functions import \
    QueryFunctions
from cb_provision.common_lib import gather_settled, run_blocking
from cb_provision.custom_exceptions.exception import ProvisioningError, \
    ProvisioningFailedError, ServerUnavailableException
from cb_provision.tasks.retry_strategy import TIMED_OUT


def is_deferred_build(content):
    """
    True if an index creation response says the build continues in the
    background. Such a response is not a failure, the index still has
    to be waited on.
    """
    if isinstance(content, dict):
        for error in content.get("errors") or []:
            if CbServer.deferred_build_msg in str(error.get("msg", "")):
                return True
        return False
    return content is not None and CbServer.deferred_build_msg in str(content)


def query_failed(status, content):
    # /query/service can answer 200 with a non-success body
    if not status:
        return True
    return isinstance(content, dict) and bool(content.get("errors"))


def first_row_flag(result, flag):
    if result is None:
        return False
    status, content = result
    if query_failed(status, content):
        return False
    rows = QueryFunctions.get_rows(content)
    return bool(rows) and bool(rows[0].get(flag))


def collect_failures(errors):
    """
    Flatten child failures into one list. Anything that is not a
    provisioning failure is a programming error and re-raised as is.
    """
    failures = list()
    for error in errors:
        if isinstance(error, ProvisioningFailedError):
            failures.extend(error.failures)
        elif isinstance(error, ProvisioningError):
            failures.append(error)
        else:
            raise error
    return failures


class BucketUtils(object):
    def __init__(self, context):
        self.context = context
        self.rest = context.rest
        self.log = logging.getLogger("provision")

    @property
    def query_enabled(self):
        return self.context.has_service(CouchbaseService.QUERY)

    async def _call(self, entity, func, *args):
        try:
            return await run_blocking(func, *args)
        except ServerUnavailableException as e:
            raise ProvisioningError(entity, str(e))

    async def _wait_for(self, entity, description, probe, predicate):
        async def safe_probe():
            try:
                return await run_blocking(probe)
            except ServerUnavailableException as e:
                self.log.debug("%s: %s" % (entity, e))
                return None

        result = await self.context.retry_strategy.retry_until(
            safe_probe, predicate, lambda: TIMED_OUT,
            self.context.convergence_timeout)
        if result is TIMED_OUT:
            raise ProvisioningError(
                entity, "Timed out after %ss waiting for %s"
                % (self.context.convergence_timeout, description))
        return result

    def _query(self, statement):
        return lambda: self.rest.query.run_query(statement, max_attempts=1)

    async def create_buckets(self):
        """
        Based on the bucket specs, create buckets and their scopes,
        collections and indexes
        """
        buckets = list(self.context.spec.buckets.values())
        self.log.debug("Creating %s bucket(s) (and corresponding indexes)"
                       % len(buckets))
        errors = await gather_settled(
            [self.create_bucket(bucket) for bucket in buckets])
        failures = collect_failures(errors)
        if failures:
            for failure in failures:
                self.log.error("Provisioning failed for %s" % failure)
            raise ProvisioningFailedError(failures)

    async def create_bucket(self, bucket):
        await self.build_bucket(bucket)
        await self.wait_for_all_services_enabled_for_bucket(bucket)
        if self.query_enabled:
            await self.wait_for_query_keyspace_present(bucket)
        if bucket.has_primary_index:
            if self.query_enabled:
                keyspace = "`%s`" % bucket.name
                await self.build_primary_index(bucket.name, keyspace)
                await self.wait_for_bucket_primary_index_online(bucket)
            else:
                self.log.info("Primary index creation for bucket %s ignored, "
                              "since QUERY service is not present"
                              % bucket.name)
        if bucket.has_scopes:
            await self.create_scopes(bucket)

    async def build_bucket(self, bucket):
        self.log.debug("Creating bucket %s" % bucket.name)
        params = bucket.get_dict_object()
        status, content = await self._call(
            bucket.name, self.rest.bucket.create_bucket, params)
        if not status:
            raise ProvisioningError(
                bucket.name, "Could not create bucket: %s" % content, content)

    def all_services_visible(self, result):
        if result is None:
            return False
        status, content = result
        if not status or not isinstance(content, dict):
            return False
        nodes = content.get("nodesExt") or []
        if not nodes:
            return False
        reported = list((nodes[0].get("services") or {}).keys())
        # Reported keys carry suffixes, e.g. kvSSL, indexHttp
        return all(any(key.startswith(service.identifier)
                       for key in reported)
                   for service in self.context.spec.services)

    async def wait_for_all_services_enabled_for_bucket(self, bucket):
        self.log.debug("Waiting for all services enabled for bucket: %s"
                       % bucket.name)
        await self._wait_for(
            bucket.name, "services to be enabled for the bucket",
            lambda: self.rest.bucket.get_bucket_services(bucket.name,
                                                    max_attempts=1),
            self.all_services_visible)

    async def wait_for_query_keyspace_present(self, bucket):
        # Query's metadata catalogue lags behind bucket creation
        self.log.debug("Waiting for query keyspace present for bucket %s"
                       % bucket.name)
        statement = 'SELECT COUNT(*) > 0 AS present FROM system:keyspaces ' \
                    'WHERE name = "%s" AND `bucket` IS MISSING' % bucket.name
        await self._wait_for(
            bucket.name, "query keyspace",
            self._query(statement),
            lambda result: first_row_flag(result, "present"))

    async def run_index_ddl(self, entity, statement):
        """
        Issue an index creation statement. A deferred build reply counts
        as success, any other failure is fatal for the entity.
        """
        status, content = await self._call(
            entity, self.rest.query.run_query, statement)
        if not query_failed(status, content):
            return
        if is_deferred_build(content):
            self.log.debug("%s: index build continues in background (%s)"
                           % (entity, statement))
            return
        raise ProvisioningError(
            entity, "Index creation failed for '%s': %s"
            % (statement, content), content)

    async def build_primary_index(self, entity, keyspace):
        self.log.debug("Building primary index for %s" % entity)
        await self.run_index_ddl(entity,
                                 "CREATE PRIMARY INDEX ON %s" % keyspace)

    async def wait_for_bucket_primary_index_online(self, bucket):
        self.log.debug("Waiting for primary index to be online for bucket: %s"
                       % bucket.name)
        # bucket_id is only set for indexes on non default collections
        statement = 'SELECT COUNT(*) > 0 AS online FROM system:indexes ' \
                    'WHERE keyspace_id = "%s" AND bucket_id IS MISSING ' \
                    'AND is_primary = true AND state = "online"' \
                    % bucket.name
        await self._wait_for(
            bucket.name, "primary index to come online",
            self._query(statement),
            lambda result: first_row_flag(result, "online"))

    async def create_scopes(self, bucket):
        self.log.debug("Creating %s scope(s) for bucket %s"
                       % (len(bucket.scopes), bucket.name))
        errors = await gather_settled(
            [self.create_scope(bucket, scope)
             for scope in bucket.scopes.values()])
        failures = collect_failures(errors)
        if failures:
            raise ProvisioningFailedError(failures)

    async def create_scope(self, bucket, scope):
        await self.build_scope(bucket, scope)
        await self.create_collections(bucket, scope)

    async def build_scope(self, bucket, scope):
        entity = "%s.%s" % (bucket.name, scope.name)
        self.log.debug("Creating scope %s" % entity)
        status, content = await self._call(
            entity, self.rest.bucket.create_scope, bucket.name, scope.name)
        if not status:
            raise ProvisioningError(
                entity, "Could not create scope: %s" % content, content)

    async def create_collections(self, bucket, scope):
        self.log.debug("Creating %s collection(s) in %s.%s"
                       % (len(scope.collections), bucket.name, scope.name))
        errors = await gather_settled(
            [self.create_collection(bucket, scope, collection)
             for collection in scope.collections.values()])
        failures = collect_failures(errors)
        if failures:
            raise ProvisioningFailedError(failures)

    async def create_collection(self, bucket, scope, collection):
        entity = "%s.%s.%s" % (bucket.name, scope.name, collection.name)
        await self.build_collection(entity, bucket, scope, collection)
        if not self.query_enabled:
            if collection.has_primary_index or collection.secondary_indexes:
                self.log.info("Index creation for collection %s ignored, "
                              "since QUERY service is not present" % entity)
            return

        await self.wait_for_query_keyspace_present_for_collection(
            entity, bucket, scope, collection)
        if collection.has_primary_index:
            keyspace = "`%s`.`%s`.`%s`" \
                % (bucket.name, scope.name, collection.name)
            await self.build_primary_index(entity, keyspace)
            await self.wait_for_collection_primary_index_online(
                entity, bucket, scope, collection)
        if collection.secondary_indexes:
            await self.build_secondary_indexes(entity, collection)
            await self.wait_for_collection_secondary_indexes_online(
                entity, bucket, scope, collection)

    async def build_collection(self, entity, bucket, scope, collection):
        self.log.debug("Building collection: %s (and corresponding indexes)"
                       % entity)
        status, content = await self._call(
            entity, self.rest.bucket.create_collection,
            bucket.name, scope.name, collection.get_dict_object())
        if not status:
            raise ProvisioningError(
                entity, "Could not create collection: %s" % content, content)

    @staticmethod
    def collection_filter(bucket, scope, collection):
        return 'bucket_id = "%s" AND scope_id = "%s" AND keyspace_id = "%s"' \
            % (bucket.name, scope.name, collection.name)

    async def wait_for_query_keyspace_present_for_collection(
            self, entity, bucket, scope, collection):
        self.log.debug("Waiting for keyspace to be ready for collection: %s"
                       % entity)
        statement = 'SELECT COUNT(*) > 0 AS present FROM system:keyspaces ' \
                    'WHERE `bucket` = "%s" AND `scope` = "%s" ' \
                    'AND `name` = "%s"' \
                    % (bucket.name, scope.name, collection.name)
        await self._wait_for(
            entity, "query keyspace",
            self._query(statement),
            lambda result: first_row_flag(result, "present"))

    async def wait_for_collection_primary_index_online(
            self, entity, bucket, scope, collection):
        self.log.debug("Waiting for primary index to come online for "
                       "collection: %s" % entity)
        statement = 'SELECT COUNT(*) > 0 AS online FROM system:indexes ' \
                    'WHERE %s AND is_primary = true AND state = "online"' \
                    % self.collection_filter(bucket, scope, collection)
        await self._wait_for(
            entity, "primary index to come online",
            self._query(statement),
            lambda result: first_row_flag(result, "online"))

    async def build_secondary_indexes(self, entity, collection):
        # Statements are issued one by one, in the order they were given
        for statement in collection.secondary_indexes:
            self.log.debug("Building secondary index for %s: %s"
                           % (entity, statement))
            await self.run_index_ddl(entity, statement)

    async def wait_for_collection_secondary_indexes_online(
            self, entity, bucket, scope, collection):
        """
        Only this collection's non primary indexes are looked at. Waits
        until at least one row per issued statement is listed and every
        listed index is online.
        """
        self.log.debug("Waiting for %s secondary index(es) to come online "
                       "for collection: %s"
                       % (len(collection.secondary_indexes), entity))
        statement = 'SELECT name, state FROM system:indexes ' \
                    'WHERE %s AND (is_primary IS MISSING ' \
                    'OR is_primary = false)' \
                    % self.collection_filter(bucket, scope, collection)
        expected = len(collection.secondary_indexes)

        def all_online(result):
            if result is None:
                return False
            status, content = result
            if query_failed(status, content):
                return False
            rows = QueryFunctions.get_rows(content)
            return len(rows) >= expected \
                and all(row.get("state") == "online" for row in rows)

        await self._wait_for(
            entity, "secondary indexes to come online",
            self._query(statement), all_online)
