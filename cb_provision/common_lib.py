import asyncio
import logging
import time

log = logging.getLogger("provision")


async def time_phase(phase, coro_fn, *args, **kwargs):
    """
    Await coro_fn(*args, **kwargs) and log how long the phase took
    :param phase: Name reported in the log line
    :return: Whatever coro_fn returns
    """
    start = time.monotonic()
    outcome = "failed"
    try:
        result = await coro_fn(*args, **kwargs)
        outcome = "done"
        return result
    finally:
        log.debug("Phase %s %s in %d ms"
                  % (phase, outcome, (time.monotonic() - start) * 1000))


async def run_blocking(func, *args, **kwargs):
    """
    Run a blocking REST call off the event loop so that sibling
    coroutines keep progressing while it waits on the network
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def gather_settled(coroutines):
    """
    Run all coroutines concurrently and wait for every one of them.
    Failures do not cancel siblings.
    :return: List of exceptions raised, in submission order
    """
    results = await asyncio.gather(*coroutines, return_exceptions=True)
    return [result for result in results if isinstance(result, BaseException)]
