class CbProvisionException(Exception):
    pass


class ServerUnavailableException(CbProvisionException):
    def __init__(self, ip, port=None, msg=None):
        self.ip = ip
        self.port = port
        self.msg = msg or "Unable to reach the server"
        super(ServerUnavailableException, self).__init__(str(self))

    def __str__(self):
        if self.port:
            return "%s - %s:%s" % (self.msg, self.ip, self.port)
        return "%s - %s" % (self.msg, self.ip)


class ConnectivityError(CbProvisionException):
    """Node never answered /pools within the bootstrap timeout"""


class EditionMismatchError(CbProvisionException):
    """Enterprise-only service requested on a community edition node"""


class ConfigurationError(CbProvisionException):
    """
    A cluster bootstrap call was rejected by the server.
    Keeps the failing REST content for the caller to inspect.
    """
    def __init__(self, msg, content=None):
        self.content = content
        super(ConfigurationError, self).__init__(msg)


class ProvisioningError(CbProvisionException):
    """Bucket / scope / collection / index step failed"""
    def __init__(self, entity, msg, content=None):
        self.entity = entity
        self.content = content
        super(ProvisioningError, self).__init__("%s: %s" % (entity, msg))


class ProvisioningFailedError(CbProvisionException):
    """
    Raised once every bucket branch has settled and at least one
    entity failed. `failures` holds the individual exceptions.

    The cluster itself is bootstrapped at that point, `cluster` carries
    its connection details once the provisioner attached them.
    """
    def __init__(self, failures, cluster=None):
        self.failures = list(failures)
        self.cluster = cluster
        lines = ["%d entities failed to provision:" % len(self.failures)]
        for failure in self.failures:
            entity = getattr(failure, "entity", "unknown")
            lines.append("  %s -> %s" % (entity, failure))
        super(ProvisioningFailedError, self).__init__("\n".join(lines))

    @property
    def entities(self):
        return [getattr(failure, "entity", None) for failure in self.failures]
