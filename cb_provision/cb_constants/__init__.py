from cb_provision.cb_constants.CBServer import CbServer, CouchbaseService, \
    DEFAULT_SERVICES
