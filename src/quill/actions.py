"""Shared wrapper for user-triggered operations.

Sets the action's busy flag for the duration of the call and maps gateway
failures onto state events. Nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from quill.errors import QuillError, SessionExpiredError, TransportError
from quill.state import ActionFinished, ActionStarted, Failed, Store

logger = logging.getLogger(__name__)


async def run_action(
    store: Store,
    action: str,
    call: Callable[[], Awaitable[None]],
    *,
    on_expired: Callable[[], None],
    failure_message: str | None = None,
    exclusive: bool = True,
    clear_messages: bool = True,
) -> bool:
    """Run ``call`` as ``action``. Returns True if it completed without error.

    While an exclusive action is in flight a second submission of it is
    refused. Background actions pass ``clear_messages=False`` so they do not
    wipe the message the user is reading.
    ``failure_message`` replaces the message of non-transport failures.
    """
    if exclusive and store.state.is_busy(action):
        logger.debug("Action %s already in flight, ignoring", action)
        return False

    store.dispatch(ActionStarted(action, clear_messages=clear_messages))
    try:
        await call()
        return True
    except SessionExpiredError:
        logger.info("Session rejected during %s", action)
        on_expired()
        return False
    except TransportError as e:
        store.dispatch(Failed(str(e)))
        return False
    except QuillError as e:
        logger.warning("%s failed: %s", action, e)
        store.dispatch(Failed(failure_message or str(e)))
        return False
    finally:
        store.dispatch(ActionFinished(action))
