# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""First-run reconciliation performed once the database is reachable."""

from __future__ import annotations

from dataclasses import dataclass, field

from powforum.application.interfaces import DocumentStore, PushService
from powforum.application.services.secret_provisioner import VAPID_PUBLIC_KEY, SecretProvisioner
from powforum.domain.membership import ADMIN
from powforum.domain.users.repositories import PasswordHasher
from powforum.infrastructure.audit import AuditAction, AuditLogger
from powforum.infrastructure.db.models import Account, ForumSetting, PushSubscription
from powforum.shared.config import AppConfig
from powforum.shared.logging import logger

DEFAULT_SETTINGS: tuple[tuple[str, str], ...] = (
    ("forum_title", "Pow Forum"),
    ("forum_description", "A community forum"),
    ("registration_open", "true"),
    ("maintenance_mode", "false"),
    ("landing_page", "forum"),
)


@dataclass(slots=True)
class BootstrapResult:
    inserted_settings: list[str] = field(default_factory=list)
    fallback_account_created: bool = False
    push_rekeyed: bool = False
    subscriptions_invalidated: int = 0


class BootstrapReconciler:
    def __init__(
        self,
        *,
        store: DocumentStore,
        secrets: SecretProvisioner,
        push: PushService,
        password_hasher: PasswordHasher,
        audit: AuditLogger,
        config: AppConfig,
        default_settings: tuple[tuple[str, str], ...] = DEFAULT_SETTINGS,
    ) -> None:
        self._store = store
        self._secrets = secrets
        self._push = push
        self._password_hasher = password_hasher
        self._audit = audit
        self._config = config
        self._default_settings = default_settings
        self._rekey_handled = False

    def reconcile(self) -> BootstrapResult:
        result = BootstrapResult()
        self._ensure_settings(result)
        self._ensure_push(result)
        self._ensure_fallback_account(result)
        logger.info(
            f"bootstrap: settings_inserted={result.inserted_settings} "
            f"fallback_account={result.fallback_account_created} push_rekeyed={result.push_rekeyed}"
        )
        return result

    def _ensure_settings(self, result: BootstrapResult) -> None:
        # Existence check per type; operator-edited values are never overwritten.
        for setting_type, value in self._default_settings:
            if self._store.insert_if_absent(
                ForumSetting, "type", ForumSetting(type=setting_type, value=value)
            ):
                result.inserted_settings.append(setting_type)

    def _ensure_push(self, result: BootstrapResult) -> None:
        pair = self._secrets.ensure_key_pair()
        self._push.configure(pair.public_key, pair.private_key, self._config.secrets.push_contact)

        if not self._secrets.was_generated(VAPID_PUBLIC_KEY) or self._rekey_handled:
            return
        # Subscriptions were issued against the previous key and can no longer be delivered to.
        result.subscriptions_invalidated = self._store.delete_many(PushSubscription)
        result.push_rekeyed = True
        self._rekey_handled = True
        self._audit.log(
            AuditAction.PUSH_KEYS_ROTATED,
            details={"subscriptions_invalidated": result.subscriptions_invalidated},
        )

    def _ensure_fallback_account(self, result: BootstrapResult) -> None:
        if self._store.count_all(Account) > 0:
            return

        settings = self._config.bootstrap
        password_hash = (
            self._password_hasher.hash(settings.password) if settings.password else None
        )
        account = Account(
            username=settings.username,
            password_hash=password_hash,
            roles=frozenset({ADMIN}),
        )
        if not self._store.insert_if_absent(Account, "username", account):
            return

        result.fallback_account_created = True
        self._audit.log(
            AuditAction.BOOTSTRAP_ACCOUNT_CREATED,
            account_id=account.id,
            details={"username": settings.username},
        )
        if password_hash is None:
            logger.warning(
                f"bootstrap: created '{settings.username}' without a password; "
                "set BOOTSTRAP_PASSWORD before first start to enable its login"
            )


__all__ = ["BootstrapReconciler", "BootstrapResult", "DEFAULT_SETTINGS"]
