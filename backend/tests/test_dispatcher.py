"""Dispute resolution dispatcher, its busy-gated submit and the post-resolve refresh."""
import asyncio

import httpx
import pytest

from admin_console.disputes.dispatcher import (
    DisputeResolutionDispatcher,
    ResolutionParams,
    submit_resolution,
)
from admin_console.errors import InvalidState, MissingFields, RemoteError
from admin_console.models.enums import OperationStatus, ResolutionAction
from admin_console.schemas.common import PageMeta
from admin_console.schemas.dispute import Dispute
from admin_console.services.disputes import DisputeService
from admin_console.state import DisputeScreen
from conftest import FakeMarketplace, dispute_page, make_dispute

SPLIT_LABEL = "Split Payment Between Buyer & Seller"


def _open_screen(**dispute_overrides) -> DisputeScreen:
    screen = DisputeScreen()
    screen.open_detail(Dispute.model_validate(make_dispute(**dispute_overrides)))
    return screen


@pytest.fixture
def service(marketplace_client) -> DisputeService:
    return DisputeService(marketplace_client)


@pytest.mark.asyncio
async def test_split_payment_end_to_end(fake_api: FakeMarketplace, service):
    """Open dispute, 40/60 split: one resolve call, page 1 refetch, delayed close."""
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "Payment split", "action": "SPLIT_PAYMENT"})
    fake_api.add("GET", "/disputes", json_body=dispute_page([make_dispute(status="RESOLVED")]))

    screen = _open_screen(status="Open")
    screen.form.select(SPLIT_LABEL)
    screen.form.buyer_percentage = 40
    screen.form.comment = "fair split agreed"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0.05)

    result = await submit_resolution(screen, dispatcher)

    assert result is not None
    assert result.action == ResolutionAction.SPLIT_PAYMENT
    assert result.seller_percentage == 60
    [call] = fake_api.calls_to("POST", "/disputes/d1/resolve")
    assert FakeMarketplace.body(call) == {
        "action": "SPLIT_PAYMENT",
        "resolveComment": "fair split agreed",
        "buyerPercentage": 40,
    }
    [refetch] = fake_api.calls_to("GET", "/disputes")
    assert refetch.url.params["page"] == "1"
    assert refetch.url.params["limit"] == "50"
    assert screen.disputes[0].is_resolved
    assert screen.form.operation.status == OperationStatus.SUCCEEDED

    # Still visible during the grace delay, hidden afterwards
    assert screen.detail_open
    await screen.pending_close
    assert not screen.detail_open
    assert screen.selected is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "action",
    [ResolutionAction.REFUND_BUYER, ResolutionAction.PAY_SELLER, ResolutionAction.REQUEST_REWORK],
)
async def test_non_split_actions_never_send_percentage(fake_api, service, action):
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "ok"})
    fake_api.add("GET", "/disputes", json_body=dispute_page([]))
    screen = _open_screen()
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    result = await dispatcher.resolve(
        screen.selected, action, ResolutionParams(buyer_percentage=40), "  handled by phone  "
    )

    assert result.buyer_percentage is None
    assert result.seller_percentage is None
    [call] = fake_api.calls_to("POST", "/disputes/d1/resolve")
    assert FakeMarketplace.body(call) == {"action": action.value, "resolveComment": "handled by phone"}


@pytest.mark.asyncio
@pytest.mark.parametrize("comment", ["", "   "])
async def test_missing_comment_issues_no_call(fake_api, service, comment):
    screen = _open_screen()
    screen.form.select("Seller Rework")
    screen.form.comment = comment
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    assert await submit_resolution(screen, dispatcher) is None

    assert fake_api.calls == []
    assert screen.form.error == "Please select a resolution and provide a comment"
    assert screen.detail_open


@pytest.mark.asyncio
async def test_missing_action_raises_before_any_call(fake_api, service):
    screen = _open_screen()
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)
    with pytest.raises(MissingFields):
        await dispatcher.resolve(screen.selected, None, None, "comment")
    assert fake_api.calls == []


@pytest.mark.asyncio
async def test_out_of_range_split_issues_no_call(fake_api, service):
    screen = _open_screen()
    screen.form.select(SPLIT_LABEL)
    screen.form.buyer_percentage = 71
    screen.form.comment = "too generous"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    await submit_resolution(screen, dispatcher)

    assert fake_api.calls == []
    assert screen.form.error == "Buyer percentage must be between 0 and 70"


@pytest.mark.asyncio
async def test_resolved_dispute_is_rejected(fake_api, service):
    screen = _open_screen(status="RESOLVED", resolveComment="Refunded in March")
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    with pytest.raises(InvalidState):
        await dispatcher.resolve(
            screen.selected, ResolutionAction.REFUND_BUYER, None, "second attempt"
        )
    assert fake_api.calls == []


@pytest.mark.asyncio
async def test_remote_failure_keeps_form_intact(fake_api, service):
    fake_api.add("POST", "/disputes/d1/resolve", status_code=500, json_body={"message": "booking not found"})
    screen = _open_screen()
    screen.form.select(SPLIT_LABEL)
    screen.form.buyer_percentage = 40
    screen.form.comment = "fair split agreed"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    assert await submit_resolution(screen, dispatcher) is None

    assert screen.form.error == "booking not found"
    assert screen.form.operation.status == OperationStatus.FAILED
    assert screen.form.label == SPLIT_LABEL
    assert screen.form.action == ResolutionAction.SPLIT_PAYMENT
    assert screen.form.comment == "fair split agreed"
    assert screen.form.buyer_percentage == 40
    assert screen.detail_open
    assert screen.pending_close is None
    assert fake_api.calls_to("GET", "/disputes") == []


@pytest.mark.asyncio
async def test_remote_failure_propagates_from_dispatcher(fake_api, service):
    fake_api.add("POST", "/disputes/d1/resolve", status_code=500, json_body={"message": "booking not found"})
    screen = _open_screen()
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    with pytest.raises(RemoteError) as exc_info:
        await dispatcher.resolve(screen.selected, ResolutionAction.PAY_SELLER, None, "release it")
    assert exc_info.value.message == "booking not found"


@pytest.mark.asyncio
async def test_network_failure_uses_fallback_message(fake_api, service):
    fake_api.fail_network("POST", "/disputes/d1/resolve")
    screen = _open_screen()
    screen.form.select("Refund Buyer (70% only)")
    screen.form.comment = "refund"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    await submit_resolution(screen, dispatcher)

    assert screen.form.error == "Failed to resolve dispute"


@pytest.mark.asyncio
async def test_refresh_reuses_active_page_size(fake_api, service):
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "ok"})
    fake_api.add("GET", "/disputes", json_body=dispute_page([], limit=20))
    screen = _open_screen()
    screen.meta = PageMeta(total=60, page=3, limit=20)
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    await dispatcher.resolve(screen.selected, ResolutionAction.PAY_SELLER, None, "release")

    [refetch] = fake_api.calls_to("GET", "/disputes")
    assert refetch.url.params["page"] == "1"
    assert refetch.url.params["limit"] == "20"
    assert not screen.detail_open


@pytest.mark.asyncio
async def test_refresh_failure_does_not_undo_resolution(fake_api, service):
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "ok"})
    fake_api.add("GET", "/disputes", status_code=500, json_body={})
    screen = _open_screen()
    screen.form.select("Pay Seller (Release 70%)")
    screen.form.comment = "release"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    result = await submit_resolution(screen, dispatcher)

    assert result is not None
    assert screen.form.operation.status == OperationStatus.SUCCEEDED
    assert screen.error == "Failed to load disputes"
    assert screen.disputes == []


@pytest.mark.asyncio
async def test_malformed_refetch_does_not_undo_resolution(fake_api, service):
    broken = make_dispute()
    del broken["createdAt"]
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "ok"})
    fake_api.add("GET", "/disputes", json_body=dispute_page([broken]))
    screen = _open_screen()
    screen.form.select("Pay Seller (Release 70%)")
    screen.form.comment = "release"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    result = await submit_resolution(screen, dispatcher)

    assert result is not None
    assert len(fake_api.calls_to("POST", "/disputes/d1/resolve")) == 1
    assert screen.form.operation.status == OperationStatus.SUCCEEDED
    assert screen.error == "Failed to load disputes"
    assert screen.disputes == []
    assert not screen.detail_open


@pytest.mark.asyncio
async def test_comment_sent_as_entered(fake_api, service):
    fake_api.add("POST", "/disputes/d1/resolve", json_body={"message": "ok"})
    fake_api.add("GET", "/disputes", json_body=dispute_page([]))
    screen = _open_screen()
    screen.form.select("Seller Rework")
    screen.form.comment = "  redo the grout\n"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    await submit_resolution(screen, dispatcher)

    [call] = fake_api.calls_to("POST", "/disputes/d1/resolve")
    assert FakeMarketplace.body(call)["resolveComment"] == "  redo the grout\n"


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_ignored(fake_api, service):
    release = asyncio.Event()

    async def slow_resolve(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, json={"message": "ok"})

    fake_api.add("POST", "/disputes/d1/resolve", handler=slow_resolve)
    fake_api.add("GET", "/disputes", json_body=dispute_page([]))
    screen = _open_screen()
    screen.form.select("Seller Rework")
    screen.form.comment = "redo the grout"
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)

    first = asyncio.create_task(submit_resolution(screen, dispatcher))
    while not screen.form.operation.busy:
        await asyncio.sleep(0)
    assert await submit_resolution(screen, dispatcher) is None
    release.set()
    assert await first is not None

    assert len(fake_api.calls_to("POST", "/disputes/d1/resolve")) == 1


@pytest.mark.asyncio
async def test_submit_without_selection_does_nothing(fake_api, service):
    screen = DisputeScreen()
    dispatcher = DisputeResolutionDispatcher(service, screen, close_delay=0)
    assert await submit_resolution(screen, dispatcher) is None
    assert fake_api.calls == []
