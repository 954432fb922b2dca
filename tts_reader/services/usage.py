"""DynamoDB-backed ledger of per-user synthesis usage."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from tts_reader.config.settings import settings
from tts_reader.services.aws import create_boto3_resource

logger = logging.getLogger(__name__)

_DAY_MS = 24 * 60 * 60 * 1000
_DAY_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class UsageRecord:
    """One row per synthesis request."""

    user_id: str
    timestamp: int
    character_count: int
    voice_id: str
    engine: str
    output_format: str
    ttl: int | None = None

    def to_item(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "userId": self.user_id,
            "timestamp": self.timestamp,
            "characterCount": self.character_count,
            "voiceId": self.voice_id,
            "engine": self.engine,
            "outputFormat": self.output_format,
        }
        if self.ttl is not None:
            item["ttl"] = self.ttl
        return item

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "UsageRecord":
        ttl = item.get("ttl")
        return cls(
            user_id=str(item.get("userId", "")),
            timestamp=_as_int(item.get("timestamp")),
            character_count=_as_int(item.get("characterCount")),
            voice_id=str(item.get("voiceId") or "unknown"),
            engine=str(item.get("engine") or ""),
            output_format=str(item.get("outputFormat") or ""),
            ttl=_as_int(ttl) if ttl is not None else None,
        )


@dataclass
class VoiceUsage:
    count: int = 0
    characters: int = 0


@dataclass
class UsageSummary:
    """Aggregates computed over a window of usage records."""

    total_requests: int = 0
    total_characters: int = 0
    voice_usage: dict[str, VoiceUsage] = field(default_factory=dict)
    first_usage: int | None = None
    last_usage: int | None = None

    @property
    def average_characters_per_request(self) -> int:
        if self.total_requests == 0:
            return 0
        return round(self.total_characters / self.total_requests)


class UsageStoreError(RuntimeError):
    """Raised when the usage table cannot be read or written."""


def _as_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""

    return int(time.time() * 1000)


def summarize_usage(records: Sequence[UsageRecord]) -> UsageSummary:
    """Aggregate request/character totals, per-voice usage and first/last timestamps."""

    summary = UsageSummary()
    for record in records:
        summary.total_requests += 1
        summary.total_characters += record.character_count
        voice = summary.voice_usage.setdefault(record.voice_id or "unknown", VoiceUsage())
        voice.count += 1
        voice.characters += record.character_count

    timestamps = sorted(record.timestamp for record in records)
    if timestamps:
        summary.first_usage = timestamps[0]
        summary.last_usage = timestamps[-1]
    return summary


class UsageLedger:
    """Append and query usage rows keyed by ``userId`` + ``timestamp``."""

    def __init__(
        self,
        *,
        table: Any | None = None,
        table_name: str = settings.usage.table_name,
        retention_days: int = settings.usage.retention_days,
    ) -> None:
        self._table = table
        self._table_name = table_name
        self._retention_days = retention_days

    @property
    def table(self) -> Any:
        if self._table is None:
            resource = create_boto3_resource("dynamodb", region_name=settings.usage.region)
            self._table = resource.Table(self._table_name)
        return self._table

    def build_record(
        self,
        *,
        user_id: str,
        character_count: int,
        voice_id: str,
        engine: str,
        output_format: str,
        timestamp: int | None = None,
    ) -> UsageRecord:
        created_ms = timestamp if timestamp is not None else now_ms()
        return UsageRecord(
            user_id=user_id,
            timestamp=created_ms,
            character_count=character_count,
            voice_id=voice_id,
            engine=engine,
            output_format=output_format,
            ttl=created_ms // 1000 + self._retention_days * _DAY_SECONDS,
        )

    async def record(self, record: UsageRecord) -> None:
        """Append a usage row; rows expire through the table's TTL attribute."""

        try:
            await run_in_threadpool(self.table.put_item, Item=record.to_item())
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to record usage for user=%s", record.user_id)
            raise UsageStoreError(f"Failed to record usage: {exc}") from exc

    async def query(
        self,
        user_id: str,
        *,
        since_ms: int,
        limit: int | None = None,
    ) -> list[UsageRecord]:
        """Return the user's rows newer than ``since_ms``, most recent first."""

        try:
            items = await run_in_threadpool(self._query_items, user_id, since_ms, limit)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Failed to query usage for user=%s", user_id)
            raise UsageStoreError(f"Failed to query usage: {exc}") from exc
        return [UsageRecord.from_item(item) for item in items]

    def _query_items(
        self,
        user_id: str,
        since_ms: int,
        limit: int | None,
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("userId").eq(user_id)
            & Key("timestamp").gte(since_ms),
            "ScanIndexForward": False,
        }
        if limit is not None:
            kwargs["Limit"] = limit

        items: list[dict[str, Any]] = []
        while True:
            page = self.table.query(**kwargs)
            items.extend(page.get("Items", []))
            last_key = page.get("LastEvaluatedKey")
            if limit is not None or not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key


def window_start_ms(days: int, *, reference_ms: int | None = None) -> int:
    """Epoch milliseconds ``days`` before ``reference_ms`` (default: now)."""

    reference = reference_ms if reference_ms is not None else now_ms()
    return reference - days * _DAY_MS


def get_usage_ledger() -> UsageLedger:
    """Return the default usage ledger instance."""

    return _DEFAULT_LEDGER


_DEFAULT_LEDGER = UsageLedger()


__all__ = [
    "UsageLedger",
    "UsageRecord",
    "UsageStoreError",
    "UsageSummary",
    "VoiceUsage",
    "get_usage_ledger",
    "now_ms",
    "summarize_usage",
    "window_start_ms",
]
