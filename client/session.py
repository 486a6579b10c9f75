"""
client/session.py -- Client-side session manager.

Owns the signed-in state of a client application and keeps three things in
step: the stored token, the current user, and the cache of identity-scoped
query results.

State: user, is_authenticated, is_initialized, is_loading, last_error.

Lifecycle:
  start()   -- no stored token: initialized at once, anonymous. Stored token:
               profile verification runs on a worker thread and
               is_initialized stays False until it resolves.
                 success      -> user set, token kept
                 401 / 403    -> both token stores, user and cache cleared,
                                 one "Session Expired" notification
                 other errors -> retried (verify_retries), then token and user
                                 kept; fail open for transient errors only
  login()   -- token saved per remember-me, user set, cache invalidated once.
  signup()  -- same, always session-scoped storage.
  logout()  -- server call is best effort; local state is always cleared.

Concurrency:
  One login, one signup and one logout may be in flight; a second submission
  of the same kind returns None immediately instead of queueing. Different
  kinds may overlap.

  Every identity change bumps an epoch counter. A verification captures the
  epoch when it starts and its result is discarded if the epoch moved on (a
  login or logout happened meanwhile).

  Each login or signup applies its response once, under its own operation
  lock, so the cache is invalidated exactly once per operation.

  A refresh() while an older verification is still running starts a new one
  when the epoch has moved on; the older result will be discarded.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass

from client.api import ApiError, AuthApi
from client.cache import QueryCache
from client.config import ClientSettings
from client.notifications import LoggingNotifier, Notifier
from client.storage import FileTokenStore, MemoryTokenStore, TokenStorage

logger = logging.getLogger("barnacle.client")

PROFILE_KEY = ("auth", "profile")

SESSION_EXPIRED_TITLE = "Session Expired"
SESSION_EXPIRED_MESSAGE = "Your session has expired or user account was deleted. Please log in again."


@dataclass(frozen=True)
class SessionState:
    user: dict | None
    is_authenticated: bool
    is_initialized: bool
    is_loading: bool
    last_error: str | None


def _display_name(user: dict) -> str:
    return user.get("firstName") or user.get("fullName") or "User"


class SessionManager:
    def __init__(
        self,
        api: AuthApi,
        storage: TokenStorage,
        cache: QueryCache | None = None,
        notifier: Notifier | None = None,
        verify_retries: int = 2,
        executor: Executor | None = None,
    ) -> None:
        self.api = api
        self.storage = storage
        self.cache = cache if cache is not None else QueryCache()
        self.notifier: Notifier = notifier if notifier is not None else LoggingNotifier()
        self.verify_retries = verify_retries
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="barnacle-verify")

        self._lock = threading.RLock()
        self._login_lock = threading.Lock()
        self._signup_lock = threading.Lock()
        self._logout_lock = threading.Lock()

        self._user: dict | None = None
        self._is_initialized = False
        self._last_error: str | None = None
        self._epoch = 0
        self._verification: Future | None = None
        self._verification_epoch = -1

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings | None = None,
        notifier: Notifier | None = None,
        http=None,
    ) -> SessionManager:
        """Wire a manager from ClientSettings: file + memory token stores,
        a QueryCache with the configured TTLs and an AuthApi reading the
        token from storage."""
        settings = settings or ClientSettings()
        storage = TokenStorage(FileTokenStore(settings.token_file), MemoryTokenStore(), key=settings.token_key)
        api = AuthApi(settings.api_url, token_provider=storage.get, http=http, timeout=settings.request_timeout)
        cache = QueryCache(stale_after=settings.query_stale_seconds, gc_after=settings.query_gc_seconds)
        return cls(api, storage, cache=cache, notifier=notifier, verify_retries=settings.verify_retries)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def user(self) -> dict | None:
        with self._lock:
            return self._user

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._user is not None and self.storage.get() is not None

    @property
    def is_initialized(self) -> bool:
        with self._lock:
            return self._is_initialized

    @property
    def is_verifying(self) -> bool:
        with self._lock:
            return self._verification is not None and not self._verification.done()

    @property
    def is_logging_in(self) -> bool:
        return self._login_lock.locked()

    @property
    def is_signing_up(self) -> bool:
        return self._signup_lock.locked()

    @property
    def is_logging_out(self) -> bool:
        return self._logout_lock.locked()

    @property
    def is_loading(self) -> bool:
        return self.is_verifying or self.is_logging_in or self.is_signing_up or self.is_logging_out

    @property
    def last_error(self) -> str | None:
        with self._lock:
            return self._last_error

    @property
    def state(self) -> SessionState:
        return SessionState(
            user=self.user,
            is_authenticated=self.is_authenticated,
            is_initialized=self.is_initialized,
            is_loading=self.is_loading,
            last_error=self.last_error,
        )

    def get_token(self) -> str | None:
        return self.storage.get()

    def has_remember_me(self) -> bool:
        return self.storage.has_remember_me()

    def has_role(self, role: str) -> bool:
        user = self.user
        return user is not None and user.get("role") == role

    def has_any_role(self, roles) -> bool:
        user = self.user
        return user is not None and user.get("role") in roles

    # ------------------------------------------------------------------
    # Start-up verification
    # ------------------------------------------------------------------

    def start(self) -> Future | None:
        """Initialize from stored credentials.

        Returns the verification Future, or None when there is no token (the
        session is initialized and anonymous immediately).
        """
        if self.storage.get() is None:
            with self._lock:
                self._user = None
                self._is_initialized = True
            logger.debug("No stored token, starting anonymous")
            return None
        with self._lock:
            self._is_initialized = False
        return self._schedule_verification()

    def refresh(self) -> Future | None:
        """Re-verify the stored token. No-op without a token."""
        if self.storage.get() is None:
            return None
        return self._schedule_verification()

    def _schedule_verification(self) -> Future:
        with self._lock:
            in_flight = self._verification is not None and not self._verification.done()
            if in_flight and self._verification_epoch == self._epoch:
                return self._verification
            epoch = self._epoch
            self._verification_epoch = epoch
            self._verification = self._executor.submit(self._verify, epoch)
            return self._verification

    def _verify(self, epoch: int) -> None:
        attempts = 1 + self.verify_retries
        for attempt in range(1, attempts + 1):
            try:
                payload = self.api.get_profile()
            except ApiError as exc:
                if exc.is_auth_error:
                    self._on_verification_rejected(epoch, exc)
                    return
                if attempt < attempts:
                    logger.info("Profile verification attempt %d failed (%s), retrying", attempt, exc.message)
                    continue
                self._on_verification_error(epoch, exc)
                return
            self._on_verification_success(epoch, payload)
            return

    def _is_current(self, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.debug("Discarding verification result from a previous session")
            return False
        return True

    def _on_verification_success(self, epoch: int, payload: dict) -> None:
        user = (payload.get("data") or {}).get("user")
        with self._lock:
            if not self._is_current(epoch):
                return
            if not user:
                # 2xx without a user is treated like any other non-auth failure.
                self._is_initialized = True
                self._last_error = "Profile response did not include a user"
                return
            self._user = user
            self._is_initialized = True
            self._last_error = None
        self.cache.set(PROFILE_KEY, user)

    def _on_verification_rejected(self, epoch: int, exc: ApiError) -> None:
        with self._lock:
            if not self._is_current(epoch):
                return
            logger.info("Stored token rejected (%s), clearing session", exc.status)
            self._reset_identity()
            self._last_error = exc.message
        self.cache.clear()
        self.notifier.action_failed(SESSION_EXPIRED_TITLE, SESSION_EXPIRED_MESSAGE)

    def _on_verification_error(self, epoch: int, exc: ApiError) -> None:
        with self._lock:
            if not self._is_current(epoch):
                return
            logger.warning("Profile verification failed (non-auth): %s", exc.message)
            self._is_initialized = True
            self._last_error = exc.message

    # ------------------------------------------------------------------
    # Login / signup / logout
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, remember_me: bool = False) -> dict | None:
        """Log in. Returns the user, or None if a login is already in flight.

        Raises ApiError on rejection after notifying.
        """
        if not self._login_lock.acquire(blocking=False):
            logger.debug("Login already in progress, ignoring duplicate submission")
            return None
        try:
            try:
                payload = self.api.login(email, password, remember_me=remember_me)
            except ApiError as exc:
                self._record_error(exc)
                self.notifier.action_failed("Login", exc.message or "Invalid credentials")
                raise
            user = self._complete_auth(payload, remember_me)
            self.notifier.login_success(_display_name(user))
            return user
        finally:
            self._login_lock.release()

    def signup(
        self,
        full_name: str,
        email: str,
        password: str,
        role: str | None = None,
        agree_to_terms: bool = False,
    ) -> dict | None:
        """Create an account and sign in with a session-scoped token.

        Returns the user, or None if a signup is already in flight.
        """
        if not self._signup_lock.acquire(blocking=False):
            logger.debug("Signup already in progress, ignoring duplicate submission")
            return None
        try:
            try:
                payload = self.api.signup(full_name, email, password, role=role, agree_to_terms=agree_to_terms)
            except ApiError as exc:
                self._record_error(exc)
                self.notifier.action_failed("Account Creation", exc.message or "Failed to create account")
                raise
            user = self._complete_auth(payload, remember_me=False)
            self.notifier.action_completed(f"Welcome to Barnacle-AI, {_display_name(user)}!")
            return user
        finally:
            self._signup_lock.release()

    def logout(self) -> None:
        """Log out. Local state is cleared even when the server call fails."""
        if not self._logout_lock.acquire(blocking=False):
            return
        try:
            try:
                self.api.logout()
            except ApiError as exc:
                logger.warning("Server logout failed (%s), clearing local session anyway", exc.message)
            with self._lock:
                self._reset_identity()
                self._last_error = None
            self.cache.clear()
            self.notifier.logout_success()
        finally:
            self._logout_lock.release()

    def _complete_auth(self, payload: dict, remember_me: bool) -> dict:
        """Apply a successful login/signup response and return its user."""
        data = payload.get("data") or {}
        user, token = data.get("user"), data.get("token")
        if not user or not token:
            raise ApiError("Malformed authentication response", status=None, data=payload)
        with self._lock:
            self.storage.save(token, remember_me=remember_me)
            self._user = user
            self._is_initialized = True
            self._last_error = None
            self._epoch += 1
        self.cache.invalidate()
        self.cache.set(PROFILE_KEY, user)
        return user

    def _reset_identity(self) -> None:
        # Caller holds self._lock.
        self.storage.clear()
        self._user = None
        self._is_initialized = True
        self._epoch += 1

    def _record_error(self, exc: ApiError) -> None:
        with self._lock:
            self._last_error = exc.message

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
