"""Per-provider login: show the consent URL, wait for the callback, swap the code.

The waiter never exits the process itself. Failures are raised as LoginError
subclasses and migrate.main() decides what to do with them.
"""

import time
import webbrowser

from errors import AuthorizationTimeout, LoginError, ProviderApiError, TokenExchangeError
from log_setup import get_logger

log = get_logger("login")


def wait_for_code(slot, provider, interval, attempts, sleep=time.sleep):
    """Poll `slot` every `interval` seconds, at most `attempts` times.

    Returns the authorization code, or raises AuthorizationTimeout naming the
    provider and the total time waited.
    """
    for attempt in range(attempts + 1):
        code = slot.get()
        if code is not None:
            return code
        if attempt == attempts:
            break
        sleep(interval)
    raise AuthorizationTimeout(provider, interval * attempts)


def login(session, slot, interval, attempts, open_browser=False, sleep=time.sleep):
    """Log `session` in via the browser + local callback. Returns the session.

    session must provide: name, auth_url(), fetch_token(code), fetch_user().
    """
    provider = session.name
    url = session.auth_url()
    log.info(f"Please sign in to {provider} here: {url}")
    if open_browser:
        webbrowser.open(url)

    code = wait_for_code(slot, provider, interval, attempts, sleep=sleep)
    log.debug(f"{provider} authorization code received, exchanging for a token")

    session.fetch_token(code)
    if not session.access_token:
        raise TokenExchangeError(provider, "no access token after exchange")

    try:
        session.fetch_user()
    except ProviderApiError as e:
        raise LoginError(provider, f"Logged in to {provider} but could not read the account ({e.reason})") from e

    who = f" as {session.user_name}" if session.user_name else ""
    log.info(f"Logged in to {provider}{who}!")
    return session
