"""Session/recovery store - durable browser-session snapshot of the flow"""

import json
import logging
from typing import Any, Dict, Optional, Protocol

from pydantic import ValidationError

from paywall_checkout.domain.models import (
    CheckoutSession,
    CheckoutState,
    Language,
    OnboardingAnswers,
    PersistedAppState,
    SubscriptionPlan,
)

APP_STATE_KEY = "app_state"
USER_EMAIL_KEY = "user_email"

# Step indexes of the flow: lunch, weight, paywall, success
PAYWALL_STEP = 3
SUCCESS_STEP = 4


class KeyValueStore(Protocol):
    """Synchronous session-scoped key-value storage"""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed key-value store for a single process"""

    def __init__(self, initial: Dict[str, str] | None = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class SessionStore:
    """
    Owns the persisted app state of one browser session.

    Write policy: every mutation overwrites the full snapshot (last write
    wins; there is a single writer per session). The email is additionally
    kept under its own key because it may be captured before a full
    snapshot write lands.
    """

    def __init__(self, kv: KeyValueStore):
        self._kv = kv
        self.state = self._load()

    def _load(self) -> PersistedAppState:
        """Read the snapshot once at bootstrap; unreadable snapshots start fresh"""
        raw = self._kv.get(APP_STATE_KEY)
        if not raw:
            return PersistedAppState()

        try:
            return PersistedAppState.model_validate_json(raw)
        except ValidationError as e:
            logging.warning(f"Failed to load persisted state: {e}", extra={"step": "state_load"})
            return PersistedAppState()

    def save(self) -> None:
        self._kv.set(APP_STATE_KEY, self.state.model_dump_json())

    def update_payment_info(self, **fields: Any) -> None:
        self.state.payment_info = {
            **self.state.payment_info,
            **{name: "" if value is None else str(value) for name, value in fields.items()},
        }

        if "email" in fields:
            email = fields["email"]
            if email:
                self._kv.set(USER_EMAIL_KEY, str(email))
            else:
                self._kv.remove(USER_EMAIL_KEY)

        self.save()

    def update_onboarding(self, **answers: Any) -> OnboardingAnswers:
        merged = {**self.state.onboarding_answers.model_dump(), **answers}
        self.state.onboarding_answers = OnboardingAnswers.model_validate(merged)
        self.save()
        return self.state.onboarding_answers

    def select_plan(self, plan: SubscriptionPlan) -> None:
        self.state.selected_plan = plan
        self.save()

    def set_step(self, step: int) -> None:
        self.state.current_step_index = step
        self.save()

    def switch_language(self, language: Language) -> None:
        self.state.language = language
        self.save()

    def record_checkout_outcome(self, state: CheckoutState) -> None:
        self.state.checkout_outcome = state.value
        if state is CheckoutState.SUCCEEDED:
            self.state.current_step_index = SUCCESS_STEP
        self.save()

    def current_email(self, session: Optional[CheckoutSession] = None) -> Optional[str]:
        """
        Recover the user's email, first non-empty source wins:
        1. the checkout draft / in-memory payment info
        2. the dedicated email key
        3. the email nested in the last persisted snapshot
        """
        if session is not None and session.draft.email:
            return session.draft.email

        email = self.state.payment_info.get("email")
        if email:
            return email

        email = self._kv.get(USER_EMAIL_KEY)
        if email:
            return email

        return self._snapshot_email()

    def _snapshot_email(self) -> Optional[str]:
        raw = self._kv.get(APP_STATE_KEY)
        if not raw:
            return None

        try:
            snapshot = json.loads(raw)
        except ValueError:
            return None

        return (snapshot.get("payment_info") or {}).get("email") or None

    def reset(self) -> None:
        """Erase the dedicated email entry and the snapshot, back to the empty default"""
        self._kv.remove(USER_EMAIL_KEY)
        self._kv.remove(APP_STATE_KEY)
        self.state = PersistedAppState()
