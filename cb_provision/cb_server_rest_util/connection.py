import base64
import logging
import time

import requests

from cb_provision.cb_constants import CbServer
from cb_provision.custom_exceptions.exception import \
    ServerUnavailableException


class CBRestConnection(object):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"

    def set_server_values(self, endpoint, username, password):
        self.ip = endpoint.host
        self.port = endpoint.mapped_port(CbServer.port)
        self.username = username
        self.password = password
        self.log = logging.getLogger("rest_api")

    def set_endpoint_urls(self, endpoint):
        http_url = "http://{0}:{1}"
        self.base_url = http_url.format(
            endpoint.host, endpoint.mapped_port(CbServer.port))
        self.query_url = http_url.format(
            endpoint.host, endpoint.mapped_port(CbServer.n1ql_port))

    def set_retry_values(self, max_attempts=CbServer.rest_max_attempts,
                         retry_delay=CbServer.rest_retry_delay,
                         timeout=CbServer.rest_timeout):
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.timeout = timeout

    def __init__(self):
        """
        Contains the place-holders. Need to be initialized by the
        implementing *_api.py file / module
        """
        # Basic info about the server
        self.ip = None
        self.port = None
        self.username = None
        self.password = None

        # Valid URL endpoints for reusing
        self.base_url = None
        self.query_url = None

        # Transport level retry
        self.max_attempts = CbServer.rest_max_attempts
        self.retry_delay = CbServer.rest_retry_delay
        self.timeout = CbServer.rest_timeout

        # Session reused across requests. Query calls use their own
        self.session = None
        self.query_session = None

        self.log = logging.getLogger("rest_api")

    def create_headers(self, username=None, password=None,
                       content_type='application/x-www-form-urlencoded'):
        username = username or self.username
        password = password or self.password
        authorization = base64.b64encode(
            '{}:{}'.format(username, password).encode()).decode()
        return {'Content-Type': content_type,
                'Authorization': 'Basic %s' % authorization,
                'Accept': '*/*'}

    def request(self, api, method='GET', params='', headers=None,
                timeout=None, session=None, max_attempts=None):
        """
        Issue a single REST call. Transport failures (connection refused,
        timeouts) are retried `max_attempts` times with a fixed delay.
        A POST / PUT whose response timed out is not re-sent, since the
        server may already have applied it. HTTP error codes are not
        retried, they are returned to the caller.

        :param api: Complete URL
        :param method: HTTP method
        :param params: Query params for GET, form body otherwise
        :param headers: Defaults to basic auth + form content type
        :param timeout: Per attempt timeout in seconds
        :param session: requests.Session to use, defaults to self.session
        :param max_attempts: Overrides self.max_attempts for this call.
                             Pollers pass 1 and own the deadline themselves
        :return: status (True for 2xx), decoded content, response object
        """
        session = session or self.session or requests.Session()
        headers = headers or self.create_headers()
        timeout = timeout or self.timeout
        max_attempts = max(1, max_attempts or self.max_attempts)
        request_args = {
            "method": method,
            "url": api,
            "headers": headers,
            "timeout": timeout,
        }
        if method.upper() == "GET" and params:
            request_args["params"] = params
        elif method.upper() != "GET":
            request_args["data"] = params

        if method.upper() == "GET":
            retry_on = (requests.exceptions.ConnectionError,
                        requests.exceptions.Timeout)
        else:
            # ConnectTimeout is a ConnectionError, ReadTimeout is not
            retry_on = (requests.exceptions.ConnectionError,)

        for attempt in range(1, max_attempts + 1):
            try:
                response = session.request(**request_args)
            except retry_on as err:
                self.log.debug("%s %s attempt %s/%s failed: %s"
                               % (method, api, attempt, max_attempts, err))
                if attempt == max_attempts:
                    raise ServerUnavailableException(
                        self.ip, self.port,
                        "No response after %s attempts" % attempt)
                time.sleep(self.retry_delay)
                continue
            except requests.exceptions.RequestException as err:
                self.log.debug("%s %s failed: %s" % (method, api, err))
                raise ServerUnavailableException(
                    self.ip, self.port,
                    "%s %s failed: %s" % (method, api, type(err).__name__))

            status = 200 <= response.status_code < 300
            try:
                content = response.json()
            except ValueError:
                content = response.text
            if not status:
                self.log.debug("%s %s returned %s: %s"
                               % (method, api, response.status_code,
                                  content))
            return status, content, response
