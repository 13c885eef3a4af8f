from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Mapping

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from bartmart_indexer.app.domain.errors import MalformedEventError
from bartmart_indexer.app.domain.events import (
    BartMartEvent,
    EventName,
    OrderCancelledEvent,
    OrderCreatedEvent,
    OrderFulfilledEvent,
)
from bartmart_indexer.app.domain.ports.out import EvmEventDecoder


def load_abi(abi_path: Path) -> list[dict[str, Any]]:
    if not abi_path.exists():
        raise FileNotFoundError(f"ABI file not found: {abi_path}")
    data = json.loads(abi_path.read_text(encoding="utf-8"))

    # Common formats:
    # - [ ... ] (ABI list)
    # - { "abi": [ ... ] } (artifact)
    if isinstance(data, list):
        abi = data
    elif isinstance(data, dict) and isinstance(data.get("abi"), list):
        abi = data["abi"]
    else:
        raise ValueError(
            f"Unsupported ABI JSON format in {abi_path}. Expected list or dict with 'abi' list."
        )
    return [x for x in abi if isinstance(x, dict)]


def _find_event(abi: list[dict[str, Any]], event_name: str) -> dict[str, Any]:
    events = [x for x in abi if x.get("type") == "event" and x.get("name") == event_name]
    if not events:
        names = sorted({x.get("name") for x in abi if x.get("type") == "event"})
        raise ValueError(f"Event {event_name!r} not found in ABI. Available events: {names}")
    if len(events) > 1:
        raise ValueError(
            f"Multiple events named {event_name!r} found in ABI. "
            "Disambiguation by full signature is required."
        )
    return events[0]


def _event_signature(event_abi: Mapping[str, Any]) -> str:
    name = event_abi.get("name")
    inputs = event_abi.get("inputs", [])
    if not isinstance(name, str) or not isinstance(inputs, list):
        raise ValueError("Invalid event ABI: missing name/inputs")
    types = []
    for inp in inputs:
        if not isinstance(inp, dict) or "type" not in inp:
            raise ValueError("Invalid event ABI inputs")
        types.append(inp["type"])
    return f"{name}({','.join(types)})"


def _require_int(name: str, fields: Mapping[str, Any], event_name: str) -> int:
    val = fields.get(name)
    if not isinstance(val, int) or isinstance(val, bool) or val < 0:
        raise MalformedEventError(event_name, f"{name} missing or not an unsigned integer: {val!r}")
    return val


def _require_address(name: str, fields: Mapping[str, Any], event_name: str) -> str:
    val = fields.get(name)
    if not isinstance(val, str) or not val.startswith("0x") or len(val) != 42:
        raise MalformedEventError(event_name, f"{name} missing or not an address: {val!r}")
    return val.lower()


def _build_order_created(fields: Mapping[str, Any]) -> BartMartEvent:
    name = EventName.ORDER_CREATED.value
    return OrderCreatedEvent(
        order_id=_require_int("orderId", fields, name),
        creator=_require_address("creator", fields, name),
        input_token=_require_address("inputToken", fields, name),
        input_amount=_require_int("inputAmount", fields, name),
        output_token=_require_address("outputToken", fields, name),
        output_amount=_require_int("outputAmount", fields, name),
    )


def _build_order_fulfilled(fields: Mapping[str, Any]) -> BartMartEvent:
    name = EventName.ORDER_FULFILLED.value
    return OrderFulfilledEvent(
        order_id=_require_int("orderId", fields, name),
        fulfiller=_require_address("fulfiller", fields, name),
    )


def _build_order_cancelled(fields: Mapping[str, Any]) -> BartMartEvent:
    name = EventName.ORDER_CANCELLED.value
    return OrderCancelledEvent(order_id=_require_int("orderId", fields, name))


_BUILDERS: dict[EventName, Callable[[Mapping[str, Any]], BartMartEvent]] = {
    EventName.ORDER_CREATED: _build_order_created,
    EventName.ORDER_FULFILLED: _build_order_fulfilled,
    EventName.ORDER_CANCELLED: _build_order_cancelled,
}


class BartMartEventDecoder(EvmEventDecoder):
    """
    ABI-based decoder for a single BartMart event.

    It:
    - loads ABI from a JSON file,
    - finds the event ABI by name,
    - computes topic0 = keccak("EventName(type1,type2,...)"),
    - decodes indexed args from topics[1:],
    - decodes non-indexed args from `data` with eth_abi,
    - validates the result into the typed event dataclass.

    Anything that does not fit raises MalformedEventError; no field is ever
    defaulted (a missing orderId must not turn into order 0).
    """

    def __init__(self, *, abi_path: Path, event_name: EventName) -> None:
        self._event_name = event_name
        self._event_abi = _find_event(load_abi(abi_path), event_name.value)
        self._signature = _event_signature(self._event_abi)
        self._topic0 = keccak(text=self._signature)

        inputs: list[dict[str, Any]] = list(self._event_abi.get("inputs", []))
        self._indexed_inputs = [i for i in inputs if i.get("indexed") is True]
        self._non_indexed_inputs = [i for i in inputs if not i.get("indexed")]

        self._non_indexed_types = [i["type"] for i in self._non_indexed_inputs]
        self._non_indexed_names = [i["name"] for i in self._non_indexed_inputs]

    @property
    def event_name(self) -> EventName:
        return self._event_name

    @property
    def topic0(self) -> bytes:
        return self._topic0

    @property
    def event_signature(self) -> str:
        return self._signature

    def decode(
        self,
        *,
        topics: list[bytes],
        data: bytes,
    ) -> BartMartEvent:
        name = self._event_name.value
        if not topics or bytes(topics[0]) != self._topic0:
            raise MalformedEventError(name, "topic0 does not match event signature")

        indexed_topics = topics[1:]
        if len(indexed_topics) != len(self._indexed_inputs):
            raise MalformedEventError(
                name,
                f"expected {len(self._indexed_inputs)} indexed topics, got {len(indexed_topics)}",
            )

        fields: dict[str, Any] = {}
        try:
            for inp, topic in zip(self._indexed_inputs, indexed_topics, strict=True):
                (value,) = abi_decode([inp["type"]], self._as_bytes32(topic))
                fields[inp["name"]] = value

            if self._non_indexed_inputs:
                values = abi_decode(self._non_indexed_types, bytes(data))
                fields.update(zip(self._non_indexed_names, values, strict=True))
        except (DecodingError, ValueError) as exc:
            raise MalformedEventError(name, str(exc)) from exc

        return _BUILDERS[self._event_name](fields)

    def _as_bytes32(self, b: bytes) -> bytes:
        bb = bytes(b)
        if len(bb) != 32:
            raise ValueError(f"Expected 32 bytes (bytes32 topic), got len={len(bb)}")
        return bb
