# tests/unit/test_event_decoder.py
"""Unit tests for BartMartEventDecoder on hand-built logs."""
import pytest
from eth_abi import encode
from eth_utils import keccak

from bartmart_indexer.app.domain.errors import MalformedEventError
from bartmart_indexer.app.domain.events import (
    EventName,
    OrderCancelledEvent,
    OrderCreatedEvent,
    OrderFulfilledEvent,
)
from bartmart_indexer.app.infrastructure.decoders.bartmart.event_decoder import (
    BartMartEventDecoder,
    load_abi,
)
from bartmart_indexer.app.infrastructure.factories.chain_reader_factory import DEFAULT_ABI_PATH
from tests.fakes import CREATOR, FULFILLER, NATIVE, TOKEN_B


def _decoder(name: EventName) -> BartMartEventDecoder:
    return BartMartEventDecoder(abi_path=DEFAULT_ABI_PATH, event_name=name)


def _topic(abi_type: str, value) -> bytes:
    return encode([abi_type], [value])


class TestSignatures:
    @pytest.mark.parametrize(
        "name,signature",
        [
            (EventName.ORDER_CREATED, "OrderCreated(uint256,address,address,uint256,address,uint256)"),
            (EventName.ORDER_FULFILLED, "OrderFulfilled(uint256,address)"),
            (EventName.ORDER_CANCELLED, "OrderCancelled(uint256)"),
        ],
    )
    def test_topic0(self, name: EventName, signature: str) -> None:
        decoder = _decoder(name)
        assert decoder.event_signature == signature
        assert decoder.topic0 == keccak(text=signature)

    def test_unknown_event(self, tmp_path) -> None:
        abi_file = tmp_path / "abi.json"
        abi_file.write_text('{"abi": []}', encoding="utf-8")

        assert load_abi(abi_file) == []
        with pytest.raises(ValueError, match="not found in ABI"):
            BartMartEventDecoder(abi_path=abi_file, event_name=EventName.ORDER_CREATED)

    def test_missing_abi_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_abi(tmp_path / "missing.json")


class TestDecode:
    def test_order_created(self) -> None:
        decoder = _decoder(EventName.ORDER_CREATED)

        event = decoder.decode(
            topics=[decoder.topic0, _topic("uint256", 7), _topic("address", CREATOR)],
            data=encode(
                ["address", "uint256", "address", "uint256"],
                [NATIVE, 1000, TOKEN_B, 2000],
            ),
        )

        assert event == OrderCreatedEvent(
            order_id=7,
            creator=CREATOR,
            input_token=NATIVE,
            input_amount=1000,
            output_token=TOKEN_B,
            output_amount=2000,
        )

    def test_order_fulfilled(self) -> None:
        decoder = _decoder(EventName.ORDER_FULFILLED)

        event = decoder.decode(
            topics=[decoder.topic0, _topic("uint256", 3), _topic("address", FULFILLER)],
            data=b"",
        )

        assert event == OrderFulfilledEvent(order_id=3, fulfiller=FULFILLER)

    def test_order_cancelled(self) -> None:
        decoder = _decoder(EventName.ORDER_CANCELLED)

        event = decoder.decode(topics=[decoder.topic0, _topic("uint256", 0)], data=b"")

        assert event == OrderCancelledEvent(order_id=0)

    def test_wrong_topic0(self) -> None:
        decoder = _decoder(EventName.ORDER_CANCELLED)

        with pytest.raises(MalformedEventError):
            decoder.decode(topics=[b"\x00" * 32, _topic("uint256", 1)], data=b"")

    def test_missing_order_id_topic_is_not_order_zero(self) -> None:
        decoder = _decoder(EventName.ORDER_CANCELLED)

        with pytest.raises(MalformedEventError, match="indexed topics"):
            decoder.decode(topics=[decoder.topic0], data=b"")

    def test_truncated_data(self) -> None:
        decoder = _decoder(EventName.ORDER_CREATED)

        with pytest.raises(MalformedEventError):
            decoder.decode(
                topics=[decoder.topic0, _topic("uint256", 7), _topic("address", CREATOR)],
                data=encode(["address", "uint256"], [NATIVE, 1000]),
            )

    def test_short_topic(self) -> None:
        decoder = _decoder(EventName.ORDER_CANCELLED)

        with pytest.raises(MalformedEventError):
            decoder.decode(topics=[decoder.topic0, b"\x01"], data=b"")
