"""
Movement pipeline for geowalk.

The orchestration layer that turns one untrusted text command into at most
one position update:

    rate limit -> current position -> extract + validate ->
    security re-check -> execute -> audit -> narrate

Every call returns a MovementResult and writes exactly one audit record;
nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, cast

from geowalk.db.interfaces import AuditLog, PositionStore
from geowalk.engine.config import PipelineConfig
from geowalk.engine.errors import MovementError
from geowalk.engine.extractor import CommandExtractor
from geowalk.engine.rate_limit import MovementRateLimiter
from geowalk.engine.usage import DailyUsageQuota, format_usage_warning
from geowalk.engine.validator import CommandValidator
from geowalk.geo.geocoding import Geocoder
from geowalk.geo.geometry import haversine_distance
from geowalk.models import (
    AuditRecord,
    Coordinate,
    ErrorCode,
    MovementCommand,
    MovementResult,
    create_audit_record,
)
from geowalk.services.narrative import NarrativeGenerator, TemplateNarrativeGenerator

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("geowalk.audit")

_FAILURE_PREFIXES = {
    ErrorCode.NOT_A_MOVEMENT_COMMAND: "Not a movement command",
    ErrorCode.PARSE_ERROR: "Unable to parse movement command",
    ErrorCode.OUT_OF_BOUNDS: "Destination is outside the supported area",
    ErrorCode.DISTANCE_TOO_LARGE: "Movement is too far",
    ErrorCode.LOW_CONFIDENCE: "Movement command is too uncertain",
    ErrorCode.SECURITY_VIOLATION: "Movement failed security validation",
    ErrorCode.PLAYER_NOT_FOUND: "Unable to get player status",
    ErrorCode.EXECUTION_ERROR: "Movement could not be executed",
    ErrorCode.RATE_LIMITED: "Too many movement commands",
}


@dataclass
class MovementPipeline:
    """
    Orchestrates movement commands for all actors.

    Commands for the same actor are serialized by a per-actor lock from the
    rate-limit check to the position write, so a command never reads a
    position another in-flight command is about to overwrite. Different
    actors proceed concurrently in no particular order.
    """

    positions: PositionStore
    audit_log: AuditLog
    extractor: CommandExtractor
    rate_limiter: MovementRateLimiter
    config: PipelineConfig = field(default_factory=PipelineConfig)
    narrator: NarrativeGenerator | None = None
    usage_quota: DailyUsageQuota | None = None

    _template: TemplateNarrativeGenerator = field(
        init=False, default_factory=TemplateNarrativeGenerator
    )
    _actor_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = field(
        init=False, default_factory=weakref.WeakValueDictionary
    )

    @classmethod
    def create(
        cls,
        positions: PositionStore,
        audit_log: AuditLog,
        geocoder: Geocoder | None = None,
        config: PipelineConfig | None = None,
        narrator: NarrativeGenerator | None = None,
    ) -> MovementPipeline:
        """Wire a pipeline and its components from one config."""
        config = config or PipelineConfig()
        validator = CommandValidator(
            bounds=config.bounds,
            max_hop_meters=config.max_hop_meters,
            min_confidence=config.min_confidence,
        )
        return cls(
            positions=positions,
            audit_log=audit_log,
            extractor=CommandExtractor(
                geocoder=geocoder,
                validator=validator,
                geocoder_timeout=config.geocoder_timeout_seconds,
            ),
            rate_limiter=MovementRateLimiter(
                max_requests=config.rate_limit_max_requests,
                window_seconds=config.rate_limit_window_seconds,
                retention_seconds=config.rate_limit_retention_seconds,
                sweep_interval_seconds=config.rate_limit_sweep_interval_seconds,
            ),
            config=config,
            narrator=narrator,
            usage_quota=DailyUsageQuota(
                daily_limit=config.ai_daily_limit,
                warning_ratio=config.ai_warning_ratio,
            ),
        )

    async def execute(
        self,
        actor_id: str,
        text: str,
        session_id: str = "",
        origin_ip: str = "",
    ) -> MovementResult:
        """
        Interpret and execute one movement command.

        Args:
            actor_id: Whose avatar to move
            text: Raw command text
            session_id: Caller's session, recorded for audit
            origin_ip: Caller's address, recorded for audit

        Returns:
            MovementResult; ``error_code`` is set on every failure
        """
        try:
            async with self._lock_for(actor_id):
                result, origin = await self._execute_locked(
                    actor_id, text, session_id, origin_ip
                )
        except Exception as e:
            logger.exception("Unexpected failure processing movement for %s", actor_id)
            return await self._fail(
                actor_id, text, session_id, origin_ip, ErrorCode.EXECUTION_ERROR, str(e)
            )

        if not result.success or result.command is None:
            return result

        # Narration happens outside the actor lock; it is slow and optional.
        message, warning = await self._narrate(actor_id, result.command, origin)
        return result.model_copy(update={"message": message, "usage_warning": warning})

    async def history(self, actor_id: str, limit: int = 50) -> list[AuditRecord]:
        """An actor's recent movement attempts, newest first."""
        return await self.audit_log.records_for(actor_id, limit=limit)

    def movement_stats(self, actor_id: str) -> dict[str, Any]:
        """Rate-limit and AI-usage statistics for monitoring."""
        stats = self.rate_limiter.stats(actor_id)
        if self.usage_quota is not None:
            usage = self.usage_quota.usage(actor_id)
            stats["ai_used_today"] = usage.used
            stats["ai_remaining_today"] = usage.remaining
        return stats

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _execute_locked(
        self, actor_id: str, text: str, session_id: str, origin_ip: str
    ) -> tuple[MovementResult, Coordinate | None]:
        """Run steps 1-6; also returns the start position on success."""
        # 1. Rate limit
        decision = self.rate_limiter.check(actor_id)
        if not decision.allowed:
            return await self._fail(
                actor_id,
                text,
                session_id,
                origin_ip,
                ErrorCode.RATE_LIMITED,
                f"try again in {decision.reset_in_seconds:.0f} seconds",
                rate_limited=True,
                retry_after_seconds=decision.reset_in_seconds,
                remaining_quota=0,
            ), None

        # 2. Current position
        current = await self._current_position(actor_id)
        if current is None:
            return await self._fail(
                actor_id, text, session_id, origin_ip, ErrorCode.PLAYER_NOT_FOUND, actor_id
            ), None

        # 3. Extract and validate
        try:
            command = await self.extractor.parse(text, current)
        except MovementError as e:
            return await self._fail(
                actor_id, text, session_id, origin_ip, e.code, str(e), command=e.command
            ), None
        except Exception as e:
            logger.error("Extraction failed unexpectedly for %r: %s", text, e)
            return await self._fail(
                actor_id, text, session_id, origin_ip, ErrorCode.PARSE_ERROR, str(e)
            ), None

        # 4. Independent re-check; execution never trusts the validator alone
        violation = self._security_violation(command, current)
        if violation is not None:
            return await self._fail(
                actor_id,
                text,
                session_id,
                origin_ip,
                ErrorCode.SECURITY_VIOLATION,
                violation,
                command=command,
            ), None

        # 5. Execute
        destination = cast(Coordinate, command.destination)
        try:
            await asyncio.wait_for(
                self.positions.set_current(actor_id, destination),
                timeout=self.config.store_timeout_seconds,
            )
        except Exception as e:
            reason = "position store timed out" if isinstance(e, asyncio.TimeoutError) else str(e)
            return await self._fail(
                actor_id,
                text,
                session_id,
                origin_ip,
                ErrorCode.EXECUTION_ERROR,
                reason,
                command=command,
            ), None

        # 6. Success
        self.rate_limiter.record_success(actor_id)
        audit = create_audit_record(
            actor_id=actor_id,
            original_text=text,
            success=True,
            session_id=session_id,
            origin_ip=origin_ip,
            command=command,
        )
        await self._record(audit)
        return MovementResult(
            success=True,
            message=self._template.render(command),
            command=command,
            new_position=destination,
            estimated_seconds=command.estimated_seconds,
            remaining_quota=max(decision.remaining - 1, 0),
            audit=audit,
        ), current

    async def _current_position(self, actor_id: str) -> Coordinate | None:
        try:
            return await asyncio.wait_for(
                self.positions.get_current(actor_id),
                timeout=self.config.store_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Position lookup for %s timed out", actor_id)
        except Exception as e:
            logger.warning("Position lookup for %s failed: %s", actor_id, e)
        return None

    def _security_violation(
        self, command: MovementCommand, current: Coordinate
    ) -> str | None:
        """Business-rule re-check. Returns the reason for rejection, if any."""
        if not command.safety_checked:
            return "movement command failed basic safety checks"
        if command.destination is None:
            return "movement command has no destination"

        distance = haversine_distance(current, command.destination)
        if distance > self.config.max_hop_meters:
            return (
                f"movement distance too large: {distance:.2f} meters "
                f"(max: {self.config.max_hop_meters:.0f} meters)"
            )

        if command.confidence < self.config.min_confidence:
            return (
                f"movement command confidence too low: {command.confidence:.0%} "
                f"(min: {self.config.min_confidence:.0%})"
            )

        if any(zone.contains(command.destination) for zone in self.config.restricted_zones):
            return "destination is in a restricted area"

        return None

    async def _narrate(
        self, actor_id: str, command: MovementCommand, origin: Coordinate | None
    ) -> tuple[str, str | None]:
        """Best-effort narration; always falls back to the template."""
        fallback = self._template.render(command)
        if self.narrator is None:
            return fallback, None

        warning = None
        if self.usage_quota is not None:
            usage = self.usage_quota.consume(actor_id)
            warning = format_usage_warning(usage) or None
            if not usage.allowed:
                return fallback, warning

        try:
            message = await asyncio.wait_for(
                self.narrator.describe(command, origin=origin),
                timeout=self.config.narrative_timeout_seconds,
            )
        except Exception as e:
            logger.warning("Narration failed, using template: %s", e or type(e).__name__)
            return fallback, warning
        return message, warning

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_for(self, actor_id: str) -> asyncio.Lock:
        lock = self._actor_locks.get(actor_id)
        if lock is None:
            lock = asyncio.Lock()
            self._actor_locks[actor_id] = lock
        return lock

    async def _fail(
        self,
        actor_id: str,
        text: str,
        session_id: str,
        origin_ip: str,
        code: ErrorCode,
        detail: str,
        command: MovementCommand | None = None,
        **extra: Any,
    ) -> MovementResult:
        message = f"{_FAILURE_PREFIXES[code]}: {detail}"
        audit = create_audit_record(
            actor_id=actor_id,
            original_text=text,
            success=False,
            session_id=session_id,
            origin_ip=origin_ip,
            command=command,
            error_code=code,
            error_message=message,
        )
        await self._record(audit)
        return MovementResult(
            success=False,
            message=message,
            command=command,
            error_code=code,
            audit=audit,
            **extra,
        )

    async def _record(self, audit: AuditRecord) -> None:
        audit_logger.info(
            "movement actor=%s session=%s ip=%s success=%s code=%s text=%r",
            audit.actor_id,
            audit.session_id,
            audit.origin_ip,
            audit.success,
            audit.error_code.value if audit.error_code else "-",
            audit.original_text,
        )
        try:
            await self.audit_log.append(audit)
        except Exception as e:
            # The result still carries the record; losing the store copy must
            # not turn into a pipeline failure.
            logger.error("Failed to persist audit record %s: %s", audit.id, e)
