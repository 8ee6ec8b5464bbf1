"""Tests for matching, result building and the CommandRouter."""

import pytest

from voicepos.catalog import CATALOG, ActionKind, Category, Intent
from voicepos.router import (
    LOW_CONFIDENCE_MESSAGE,
    NOT_UNDERSTOOD_MESSAGE,
    CommandResult,
    CommandRouter,
    MatchReason,
    build_result,
    match,
)


@pytest.mark.parametrize("intent", CATALOG, ids=lambda i: i.action.value)
def test_example_phrase_matches_its_intent(intent):
    found = match(intent.example, 0.9)
    assert found.reason is MatchReason.MATCHED
    assert found.intent is intent
    assert found.action is intent.action


def test_match_is_case_insensitive():
    assert match("TÌM KIẾM laptop", 0.9).action is ActionKind.SEARCH_PRODUCT


def test_first_declared_intent_wins_on_overlap():
    # both "tìm kiếm" and "khách hàng mới" occur; "tìm kiếm" is declared first
    found = match("tìm kiếm khách hàng mới", 0.9)
    assert found.action is ActionKind.SEARCH_PRODUCT

    found = match("thanh toán cho khách hàng mới", 0.9)
    assert found.action is ActionKind.PROCESS_PAYMENT


def test_catalog_order_decides_overlap():
    payment = Intent("thanh toán", ActionKind.PROCESS_PAYMENT, Category.PAYMENT, "p", "p")
    customer = Intent("khách hàng mới", ActionKind.NEW_CUSTOMER, Category.CUSTOMER, "c", "c")
    text = "thanh toán cho khách hàng mới"
    assert match(text, 0.9, (payment, customer)).action is ActionKind.PROCESS_PAYMENT
    assert match(text, 0.9, (customer, payment)).action is ActionKind.NEW_CUSTOMER


def test_confidence_gate_is_strict():
    assert match("giảm giá 5%", 0.70).reason is MatchReason.LOW_CONFIDENCE
    assert match("giảm giá 5%", 0.7001).reason is MatchReason.MATCHED


def test_low_confidence_keeps_intent_but_reports_unknown():
    found = match("in hóa đơn", 0.3)
    assert found.reason is MatchReason.LOW_CONFIDENCE
    assert found.intent.action is ActionKind.PRINT_RECEIPT
    assert found.action is ActionKind.UNKNOWN


def test_no_match():
    found = match("hôm nay trời đẹp", 0.99)
    assert found.reason is MatchReason.NO_MATCH
    assert found.intent is None
    assert found.action is ActionKind.UNKNOWN


def test_build_result_search_end_to_end_values():
    result = build_result("Tìm kiếm laptop Dell", 0.85)
    assert result.success
    assert result.action is ActionKind.SEARCH_PRODUCT
    assert dict(result.parameters) == {"searchTerm": "laptop Dell"}
    assert result.message == "Đang tìm kiếm: laptop Dell"


@pytest.mark.parametrize(
    "transcript, message",
    [
        ("thêm sản phẩm iPhone 15", "Đang thêm sản phẩm: iPhone 15"),
        ("giảm giá 10 phần trăm", "Áp dụng giảm giá 10%"),
        ("thanh toán bằng thẻ", "Thanh toán bằng thẻ"),
        ("in hóa đơn cho khách", "In hóa đơn"),
        ("hủy đơn hàng này", "Hủy đơn hàng hiện tại"),
    ],
)
def test_success_messages(transcript, message):
    assert build_result(transcript, 0.9).message == message


def test_parameterless_action_has_empty_parameters():
    result = build_result("xóa sản phẩm số 1", 0.9)
    assert result.action is ActionKind.REMOVE_PRODUCT
    assert dict(result.parameters) == {}


def test_low_confidence_and_no_match_messages_differ():
    low = build_result("thêm sản phẩm chuột", 0.5)
    none = build_result("xin chào", 0.5)
    assert not low.success and not none.success
    assert low.action is none.action is ActionKind.UNKNOWN
    assert low.message == LOW_CONFIDENCE_MESSAGE
    assert none.message == NOT_UNDERSTOOD_MESSAGE
    assert low.reason is MatchReason.LOW_CONFIDENCE
    assert none.reason is MatchReason.NO_MATCH


def test_high_confidence_without_trigger_is_not_understood():
    assert build_result("xin chào", 0.99).message == NOT_UNDERSTOOD_MESSAGE


def test_result_is_immutable():
    result = build_result("giảm giá 20%", 0.9)
    with pytest.raises(AttributeError):
        result.message = "x"
    with pytest.raises(TypeError):
        result.parameters["discountPercent"] = 50


def test_result_to_dict():
    data = build_result("thanh toán bằng chuyển khoản", 0.9).to_dict()
    assert data == {
        "transcript": "thanh toán bằng chuyển khoản",
        "confidence": 0.9,
        "action": "PROCESS_PAYMENT",
        "parameters": {"paymentMethod": "chuyển khoản"},
        "success": True,
        "message": "Thanh toán bằng chuyển khoản",
        "reason": "matched",
    }


def test_dispatch_calls_handler_once():
    router = CommandRouter()
    called = []
    router.register(ActionKind.ADD_PRODUCT, called.append)
    result = build_result("thêm sản phẩm sạc dự phòng", 0.95)
    assert router.dispatch(result) is True
    assert called == [result]


def test_dispatch_skips_unsuccessful_results():
    router = CommandRouter()
    called = []
    router.register(ActionKind.ADD_PRODUCT, called.append)
    assert router.dispatch(build_result("thêm sản phẩm sạc", 0.4)) is False
    assert router.dispatch(build_result("xin chào", 0.99)) is False
    assert called == []


def test_dispatch_without_handler_returns_false():
    router = CommandRouter()
    assert router.dispatch(build_result("in hóa đơn", 0.9)) is False


def test_dispatch_propagates_handler_errors():
    router = CommandRouter()

    def boom(result):
        raise RuntimeError("printer offline")

    router.register(ActionKind.PRINT_RECEIPT, boom)
    with pytest.raises(RuntimeError, match="printer offline"):
        router.dispatch(build_result("in hóa đơn", 0.9))


def test_register_replaces_and_unregister_removes():
    router = CommandRouter()
    first, second = [], []
    router.register(ActionKind.CANCEL_ORDER, first.append)
    router.register(ActionKind.CANCEL_ORDER, second.append)
    router.dispatch(build_result("hủy đơn hàng", 0.9))
    assert (len(first), len(second)) == (0, 1)

    router.unregister(ActionKind.CANCEL_ORDER)
    assert router.dispatch(build_result("hủy đơn hàng", 0.9)) is False


def test_register_unknown_rejected():
    with pytest.raises(ValueError):
        CommandRouter().register(ActionKind.UNKNOWN, lambda r: None)


def test_result_defaults_to_no_parameters():
    result = CommandResult("x", 0.1, ActionKind.UNKNOWN, False, "m", MatchReason.NO_MATCH)
    assert dict(result.parameters) == {}
