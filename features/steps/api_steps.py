"""Sales API step definitions."""

import logging

from behave import given, then, when
from behave.runner import Context

from salescheck.api import (
    extract_sale_id,
    extract_sale_list,
    is_success,
    parse_body,
    read_stock,
)
from salescheck.auth import login_and_get_token
from salescheck.constants import NOT_FOUND_STATUSES, Role
from salescheck.exceptions import PreconditionError

logger = logging.getLogger(__name__)


def assert_success(status: int | None, body: str | None = None) -> None:
    assert is_success(status), f"Expected 2xx but got {status}: {body}"


@given('I authenticate as "{role}" via API')
def step_authenticate_via_api(context: Context, role: str) -> None:
    state = context.state
    api = state.require_api()
    parsed = Role.parse(role)
    username, password = state.settings.credentials(parsed)

    state.set_token(parsed, login_and_get_token(api, username, password))
    logger.info("Authenticated as %s", parsed.value)


@given(
    'a plant exists with id "{plant_id}" and current stock is at least {minimum:d}'
)
def step_plant_has_minimum_stock(context: Context, plant_id: str, minimum: int) -> None:
    state = context.state
    api = state.require_api()

    response = api.get_plant(plant_id, state.any_token())
    assert_success(response.status_code, response.text)

    stock = read_stock(response.json())
    state.plant_id = plant_id
    state.before_stock = stock

    assert stock >= minimum, f"Plant {plant_id} has stock {stock}, expected >= {minimum}"


@when('I sell quantity {quantity:d} of plant "{plant_id}"')
def step_sell_as_admin(context: Context, quantity: int, plant_id: str) -> None:
    state = context.state
    api = state.require_api()

    response = api.sell(plant_id, quantity, state.token_for(Role.ADMIN))
    state.record(response)

    if is_success(response.status_code):
        state.created_sale_id = extract_sale_id(state.last_json())


@then("the sale should be created successfully")
def step_sale_created(context: Context) -> None:
    state = context.state
    assert_success(state.last_status, state.last_body_text)
    assert state.created_sale_id, "Sale created but no id returned (id/saleId missing)"


@then('the plant "{plant_id}" stock should be decreased by {quantity:d}')
def step_stock_decreased(context: Context, plant_id: str, quantity: int) -> None:
    state = context.state
    api = state.require_api()
    token = state.token_for(Role.ADMIN)

    if state.before_stock is None:
        raise PreconditionError("No stock was captured before the sale.")

    response = api.get_plant(plant_id, token)
    assert_success(response.status_code, response.text)

    after_stock = read_stock(response.json())
    expected = state.before_stock - quantity
    assert after_stock == expected, (
        f"Plant {plant_id} stock is {after_stock}, expected {expected} "
        f"({state.before_stock} - {quantity})"
    )


@given('I create a sale for plant "{plant_id}" with quantity {quantity:d} via API')
def step_create_sale(context: Context, plant_id: str, quantity: int) -> None:
    state = context.state
    api = state.require_api()

    response = api.sell(plant_id, quantity, state.token_for(Role.ADMIN))
    assert_success(response.status_code, response.text)

    state.created_sale_id = extract_sale_id(response.json())
    if not state.created_sale_id:
        raise PreconditionError("Sale created but no id returned (id/saleId missing).")
    logger.info("Created sale %s", state.created_sale_id)


@when("I delete the created sale via API")
def step_delete_created_sale(context: Context) -> None:
    state = context.state
    api = state.require_api()
    token = state.token_for(Role.ADMIN)

    if not state.created_sale_id:
        raise PreconditionError("No created sale id to delete.")

    state.record(api.delete_sale(state.created_sale_id, token))


@then("the sale should be deleted successfully")
def step_sale_deleted(context: Context) -> None:
    state = context.state
    assert_success(state.last_status, state.last_body_text)


@then('fetching that sale by id should return "{expected}"')
def step_fetch_created_sale(context: Context, expected: str) -> None:
    state = context.state
    api = state.require_api()
    token = state.token_for(Role.ADMIN)

    if not state.created_sale_id:
        raise PreconditionError("No created sale id to fetch.")

    response = api.get_sale(state.created_sale_id, token)

    if "not found" in expected.lower():
        assert response.status_code in NOT_FOUND_STATUSES, (
            f"Expected one of {NOT_FOUND_STATUSES} but got {response.status_code}"
        )
    else:
        assert_success(response.status_code, response.text)


@then("the API should respond with status {code:d}")
def step_status_is(context: Context, code: int) -> None:
    state = context.state
    assert state.last_status == code, (
        f"Expected status {code} but got {state.last_status}: {state.last_body_text}"
    )


@then('the error message should contain "{text}"')
def step_error_message_contains(context: Context, text: str) -> None:
    body = (context.state.last_body_text or "").lower()
    assert text.lower() in body, f"{text!r} not found in response body: {body!r}"


@when(
    'I attempt to sell quantity {quantity:d} of plant "{plant_id}" using user credentials'
)
def step_sell_as_user(context: Context, quantity: int, plant_id: str) -> None:
    state = context.state
    api = state.require_api()
    state.record(api.sell(plant_id, quantity, state.token_for(Role.USER)))


@when("I request all sales")
def step_request_all_sales(context: Context) -> None:
    state = context.state
    api = state.require_api()
    state.record(api.list_sales(state.token_for(Role.USER)))


@then("the response should contain a list of sales")
def step_response_is_sale_list(context: Context) -> None:
    payload = context.state.last_json()
    assert extract_sale_list(payload) is not None, (
        f"Expected an array or {{content: [...]}}, got {payload!r}"
    )


@when('I request sales page {page:d} size {size:d} sorted by "{field}" "{direction}"')
def step_request_sales_page(
    context: Context, page: int, size: int, field: str, direction: str
) -> None:
    state = context.state
    api = state.require_api()
    response = api.sales_page(
        state.token_for(Role.USER),
        page=page,
        size=size,
        sort_field=field,
        direction=direction,
    )
    state.record(response)


@then("the response should contain paginated sales data")
def step_response_is_sales_page(context: Context) -> None:
    payload = context.state.last_json()
    assert payload, "Expected a paginated response body"
    assert isinstance(payload, dict) and isinstance(payload.get("content"), list), (
        f"Expected an object with a content array, got {payload!r}"
    )


@when("I request all sales without authentication")
def step_request_all_sales_anonymously(context: Context) -> None:
    state = context.state
    api = state.require_api()
    state.record(api.list_sales())


@when("I request sales pagination endpoint without parameters")
def step_request_sales_page_defaults(context: Context) -> None:
    state = context.state
    api = state.require_api()
    state.record(api.sales_page(state.token_for(Role.USER)))


@given("at least one sale exists and I capture a valid sale id")
def step_capture_sale_id(context: Context) -> None:
    state = context.state
    api = state.require_api()

    response = api.list_sales(state.token_for(Role.USER))
    assert_success(response.status_code, response.text)

    sales = extract_sale_list(parse_body(response.text))
    if not sales:
        raise PreconditionError("No sales exist to capture an id.")

    state.captured_sale_id = extract_sale_id(sales[0])
    if not state.captured_sale_id:
        raise PreconditionError("Sale object does not contain id/saleId.")


@when("I request sale by that id")
def step_request_captured_sale(context: Context) -> None:
    state = context.state
    api = state.require_api()
    token = state.token_for(Role.USER)

    if not state.captured_sale_id:
        raise PreconditionError("No captured sale id.")

    state.record(api.get_sale(state.captured_sale_id, token))


@then("the response should contain the sale details")
def step_response_has_sale_details(context: Context) -> None:
    payload = context.state.last_json()
    assert payload, f"Expected sale details, got {context.state.last_body_text!r}"
