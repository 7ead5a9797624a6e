"""Shared BDD fixtures and step definitions for the pre-bill."""

import pytest
from prebill.errors import InvalidOperation, OperationBlocked, PrebillError
from prebill.packing.packing import PackingStatus
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for the error raised by the last action, if any."""
    return {"exc": None}


def _attempt(error, action, *args):
    try:
        return action(*args)
    except PrebillError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an empty pre-bill", target_fixture="prebill")
def empty_prebill(service):
    return service


@given(parsers.cfparse('{quantity:d} of "{product_ref}" in the pre-bill'), target_fixture="prebill")
def prebill_with_product(service, quantity, product_ref):
    service.add_to_cart(product_ref, quantity)
    return service


@given(parsers.cfparse('packing was requested from "{shop_ref}"'), target_fixture="prebill")
def packing_requested(prebill, shop_ref):
    prebill.request_packing(shop_ref)
    return prebill


@given(parsers.cfparse('"{shop_ref}" marked the request "{status}"'), target_fixture="prebill")
def shop_marked_request(prebill, shop_ref, status):
    prebill.advance_packing(shop_ref, PackingStatus(status))
    return prebill


# ---------------------------------------------------------------------------
# When steps (shared)
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer adds {quantity:d} of "{product_ref}"'))
def customer_adds(prebill, quantity, product_ref, error):
    _attempt(error, prebill.add_to_cart, product_ref, quantity)


@when(parsers.cfparse('the customer asks "{shop_ref}" to pack'))
def customer_requests_packing(prebill, shop_ref, error):
    _attempt(error, prebill.request_packing, shop_ref)


@when(parsers.cfparse('the customer cancels packing at "{shop_ref}"'))
def customer_cancels_packing(prebill, shop_ref, error):
    _attempt(error, prebill.cancel_packing, shop_ref)


@when(parsers.cfparse('the customer deletes the group for "{shop_ref}"'))
def customer_deletes_group(prebill, shop_ref, error):
    _attempt(error, prebill.delete_shop_group, shop_ref)


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the packing status of "{shop_ref}" is "{status}"'))
def packing_status_is(prebill, reload, shop_ref, status):
    assert prebill.packing_status(shop_ref) == PackingStatus(status)
    assert reload().packing_status(shop_ref) == PackingStatus(status)


@then("the action succeeds")
def action_succeeds(error):
    assert error["exc"] is None, f"Expected no error but got {error['exc']!r}"


@then("the action is blocked")
def action_blocked(error):
    assert isinstance(error["exc"], OperationBlocked)


@then("the action is invalid")
def action_invalid(error):
    assert isinstance(error["exc"], InvalidOperation)
