"""
Cooperative cancellation for asynchronous downloads.

A CancellationToken is created by whoever requests a download
(typically the chunk cache) and handed down to the download operation.
Cancelling the token aborts the in-flight request, and the
download resolves with Cancelled instead of a result.
"""
import asyncio
import inspect

from .errors import Cancelled


class CancellationToken:

    def __init__(self):
        self._cancelled = False
        self._handlers = []

    @property
    def is_cancelled(self):
        return self._cancelled

    def cancel(self):
        """
        Cancel the token and notify all registered handlers.
        Cancelling twice has no further effect.
        """
        if self._cancelled:
            return
        self._cancelled = True
        handlers, self._handlers = self._handlers, []
        for handler in handlers:
            handler()

    def add_cancellation_handler(self, handler):
        """
        Call handler() when the token is cancelled.
        If the token is already cancelled, handler() is called immediately.
        """
        if self._cancelled:
            handler()
        else:
            self._handlers.append(handler)

    def remove_cancellation_handler(self, handler):
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def raise_if_cancelled(self):
        if self._cancelled:
            raise Cancelled("Operation was cancelled")

    async def run(self, awaitable):
        """
        Await the given awaitable, unless the token is cancelled first,
        in which case the awaitable's task is cancelled and Cancelled is raised.
        """
        if self._cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise Cancelled("Operation was cancelled")

        task = asyncio.ensure_future(awaitable)
        handler = task.cancel
        self.add_cancellation_handler(handler)
        try:
            return await task
        except asyncio.CancelledError:
            if self._cancelled:
                raise Cancelled("Operation was cancelled") from None
            raise
        finally:
            self.remove_cancellation_handler(handler)


class _UncancelableToken(CancellationToken):
    def cancel(self):
        raise RuntimeError("The uncancelable token cannot be cancelled")

    def add_cancellation_handler(self, handler):
        pass

# A token that never fires.  Used when the caller doesn't supply one.
uncancelable_token = _UncancelableToken()
