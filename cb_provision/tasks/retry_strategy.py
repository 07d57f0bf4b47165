import asyncio
import logging
import time

from cb_provision.cb_constants import CbServer

log = logging.getLogger("provision")


class IntervalRetryStrategy(object):
    """
    Repeatedly awaits `probe` until `predicate` accepts its result or the
    timeout passes. The interval between probes is constant.

    Both the clock and the sleep coroutine are injectable so the timing
    can be driven by tests without real waits.
    """

    def __init__(self, interval=CbServer.poll_interval,
                 clock=time.monotonic, sleep=asyncio.sleep):
        self.interval = interval
        self.clock = clock
        self.sleep = sleep

    def has_timed_out(self, timeout, start_time):
        return self.clock() - start_time > timeout

    async def retry_until(self, probe, predicate, on_timeout, timeout):
        """
        :param probe: no-arg coroutine function returning the value to test
        :param predicate: single-arg function that tests the value
        :param on_timeout: no-arg function whose return value is handed
                           back when the predicate never held in time
        :param timeout: seconds after which to give up
        :return: first value accepted by predicate, else on_timeout()
        """
        start_time = self.clock()
        attempt = 1
        result = await probe()
        while not predicate(result):
            if self.has_timed_out(timeout, start_time):
                log.debug("Condition not met after %s attempts in %ss"
                          % (attempt, timeout))
                return on_timeout()
            await self.sleep(self.interval)
            attempt += 1
            result = await probe()
        return result


# Returned through on_timeout by callers which treat a timeout as fatal
TIMED_OUT = object()
