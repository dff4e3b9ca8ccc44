"""Decoding of raw feed frames into token events."""

import json
from typing import Any

import structlog
from pydantic import ValidationError

from ..core.errors import DecodeError
from ..core.types import Socials, TokenEvent

logger = structlog.get_logger(__name__)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def map_discover_record_to_event(record: dict[str, Any]) -> TokenEvent:
    """Map one discover batch record to a TokenEvent.

    Args:
        record: Raw record with an ``attributes`` object

    Returns:
        Decoded token event

    Raises:
        ValueError: If the record has no attributes object
        ValidationError: If attribute values are out of range
    """
    attributes = record.get("attributes")
    if not isinstance(attributes, dict):
        raise ValueError("record has no attributes object")

    audit = _as_dict(attributes.get("audit"))
    socials = _as_dict(attributes.get("socials"))

    return TokenEvent(
        id=str(record["id"]) if record.get("id") is not None else None,
        name=attributes.get("name") or "",
        symbol=attributes.get("symbol") or "",
        token_address=attributes.get("tokenAddress") or attributes.get("address") or "",
        market_cap=attributes.get("fdv") or 0.0,
        price_usd=attributes.get("price_usd"),
        pooled_liquidity=attributes.get("pooled_sol") or 0.0,
        volume=attributes.get("volume") or 0.0,
        top_holders_percent=audit.get("top_holders_perc"),
        dev_holding_percent=attributes.get("dev_holding_perc"),
        holders_count=attributes.get("holders_count"),
        buys=attributes.get("buys_count") or 0,
        sells=attributes.get("sells_count") or 0,
        lp_burned_percent=audit.get("lp_burned_perc") or 0.0,
        freeze_authority=audit.get("freeze_authority"),
        mint_authority=audit.get("mint_authority"),
        snipers_count=attributes.get("snipers_count"),
        socials=Socials(
            twitter=socials.get("twitter"),
            telegram=socials.get("telegram"),
            website=socials.get("website"),
        ),
        created_timestamp=attributes.get("created_timestamp"),
    )


def decode(raw: str | bytes) -> list[TokenEvent] | None:
    """Decode a raw frame into a batch of token events.

    Frames that are valid JSON but carry no discover batch (welcome, ping,
    subscription confirmations, a null batch) yield None. Records inside a batch
    that fail validation are dropped and logged.

    Args:
        raw: Raw frame text

    Returns:
        Token events in batch order, or None if the frame carries no batch

    Raises:
        DecodeError: If the frame is not valid JSON or the batch is malformed
    """
    try:
        payload = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        raise DecodeError(f"Frame is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        return None

    discover = _as_dict(_as_dict(payload.get("message")).get("discover"))
    records = discover.get("data")
    if records is None:
        return None

    if not isinstance(records, list):
        raise DecodeError(
            f"Discover batch is {type(records).__name__}, expected a list"
        )

    events = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("Dropped non-object token record", index=index)
            continue
        try:
            events.append(map_discover_record_to_event(record))
        except (ValueError, ValidationError) as e:
            logger.warning(
                "Dropped malformed token record",
                index=index,
                record_id=record.get("id"),
                error=str(e),
            )

    return events


class FrameDecoder:
    """Decodes frames for the pipeline, containing per-frame failures."""

    def __init__(self) -> None:
        self.frames_decoded = 0
        self.frames_ignored = 0
        self.decode_errors = 0

    def __call__(self, raw: str | bytes) -> list[TokenEvent]:
        """Decode a frame, returning an empty list for ignored or bad frames."""
        try:
            events = decode(raw)
        except DecodeError as e:
            self.decode_errors += 1
            logger.warning("Dropped undecodable frame", error=str(e))
            return []

        if events is None:
            self.frames_ignored += 1
            logger.debug("Ignored non-discover frame")
            return []

        self.frames_decoded += 1
        logger.debug("Decoded discover batch", count=len(events))
        return events
