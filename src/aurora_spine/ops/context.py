"""
Invocation-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context is built once per invocation (a Lambda call, a CLI
command) from :class:`~aurora_spine.core.settings.AuroraSettings` and carries
the statement client and endpoints, replacing process-wide client
singletons.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from aurora_spine.core.data_api.client import StatementClient
from aurora_spine.core.endpoint import EndpointIdentity
from aurora_spine.core.settings import AuroraSettings


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        settings: Validated settings for this invocation.
        client: Statement client bound to this invocation's transport.
        request_id: Unique ID for this invocation (auto-generated).
        caller: Origin of the request (``"lambda"``, ``"cli"``, ``"sdk"``).
        dry_run: When ``True``, operations report what they would do.
    """

    settings: AuroraSettings
    client: StatementClient
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_settings(
        cls,
        settings: AuroraSettings,
        *,
        caller: str = "sdk",
        dry_run: bool = False,
    ) -> OperationContext:
        return cls(
            settings=settings,
            client=StatementClient.from_settings(settings),
            caller=caller,
            dry_run=dry_run,
        )

    @property
    def endpoint(self) -> EndpointIdentity:
        return self.settings.endpoint()

    @property
    def admin_endpoint(self) -> EndpointIdentity:
        return self.settings.admin_endpoint()

    def session_options(self) -> dict[str, Any]:
        """Keyword arguments for :class:`TransactionSession`."""
        return {
            "timeout_seconds": self.settings.invocation_timeout_seconds,
            "explicit_rollback": self.settings.explicit_rollback,
        }


__all__ = ["OperationContext"]
