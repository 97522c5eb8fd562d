"""Sales UI step definitions.

Selectors are deliberately tolerant: every affordance is probed through an
ordered list of candidates in ``salescheck.ui.locators``.
"""

import logging
import re
from urllib.parse import parse_qs, quote, urlparse

from behave import given, then, when
from behave.runner import Context
from playwright.sync_api import Page, Response, expect
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from salescheck.api import (
    SalesApiClient,
    extract_sale_id,
    extract_sale_list,
    is_success,
    read_stock,
)
from salescheck.auth import login_and_get_token
from salescheck.constants import (
    CONFIRM_SETTLE_DELAY_MS,
    LONG_WAIT_TIMEOUT_MS,
    NAVIGATION_TIMEOUT_MS,
    SETTLE_DELAY_MS,
    SORT_FIELDS,
    UI_LOGIN_PATH,
    UI_SALES_NEW_PATH,
    UI_SALES_PATH,
    Role,
)
from salescheck.exceptions import (
    AuthenticationError,
    EvidenceNotFoundError,
    PreconditionError,
)
from salescheck.ui import locators
from salescheck.ui.evidence import (
    NATIVE_INVALID_SCRIPT,
    OPTIONS_LOADED_SCRIPT,
    QUANTITY_INVALID_SCRIPT,
    SELECT_OPTIONS_SCRIPT,
    arm_dialog,
    assert_not_redirected_to_login,
    capture_response,
    first_real_option,
    match_option,
    resolve_first,
    response_text,
    url_path,
    wait_quietly,
)
from salescheck.world import ScenarioState

logger = logging.getLogger(__name__)

ARE_YOU_SURE = re.compile(r"are you sure", re.IGNORECASE)
DELETE_WORD = re.compile(r"delete", re.IGNORECASE)

MAX_SEED_ATTEMPTS = 3
SEED_OPTION_FALLBACK = (1,)


def page_of(context: Context) -> Page:
    return context.state.require_page()


def open_route(state: ScenarioState, path: str, label: str) -> Page:
    page = state.require_page()
    page.goto(state.settings.url(path), wait_until="domcontentloaded")
    page.wait_for_timeout(SETTLE_DELAY_MS)
    assert_not_redirected_to_login(page, state.settings.screenshot_dir, label)
    return page


def fail_without_evidence(state: ScenarioState, label: str, evidence: str) -> None:
    raise EvidenceNotFoundError(evidence, state.screenshot(label))


def sort_field_for(column: str) -> str:
    return SORT_FIELDS.get(column, column)


def admin_api(state: ScenarioState) -> tuple[SalesApiClient, str]:
    """Open a standalone API client for UI scenarios and log in as admin.

    The client is owned by the caller and must be closed.
    """
    api = SalesApiClient(state.settings)
    try:
        username, password = state.settings.credentials(Role.ADMIN)
        token = login_and_get_token(api, username, password)
    except Exception:
        api.close()
        raise
    return api, token


def fetch_stock(state: ScenarioState, plant_id: str) -> int | float:
    api, token = admin_api(state)
    with api:
        response = api.get_plant(plant_id, token)
        assert is_success(response.status_code), (
            f"Failed to fetch plant {plant_id} ({response.status_code}): {response.text}"
        )
        return read_stock(response.json())


def select_options(page: Page) -> list[dict[str, str]]:
    select = page.locator(locators.PLANT_SELECT).first
    select.wait_for(state="visible", timeout=LONG_WAIT_TIMEOUT_MS)
    return select.evaluate(SELECT_OPTIONS_SCRIPT)


def choose_first_plant(page: Page, fallback: tuple[int, ...] = (1, 0)) -> None:
    value = first_real_option(select_options(page), fallback)
    if not value:
        raise PreconditionError("No plant options found in dropdown.")
    page.locator(locators.PLANT_SELECT).first.select_option(value=value)


def is_sales_list_url(url: str) -> bool:
    return url_path(url).rstrip("/") == UI_SALES_PATH


def is_sale_post(response: Response) -> bool:
    return response.request.method == "POST" and "sales" in response.url.lower()


@given('I am logged in as "{role}"')
def step_ui_login(context: Context, role: str) -> None:
    state = context.state
    page = state.require_page()
    parsed = Role.parse(role)
    username, password = state.settings.credentials(parsed)
    login_path = state.settings.api_login

    page.goto(state.settings.url(UI_LOGIN_PATH), wait_until="domcontentloaded")
    page.fill(locators.LOGIN_USERNAME, username)
    page.fill(locators.LOGIN_PASSWORD, password)

    login_response = capture_response(
        page,
        lambda: page.click(locators.LOGIN_SUBMIT),
        lambda r: r.request.method == "POST" and login_path in r.url,
        NAVIGATION_TIMEOUT_MS,
    )

    if login_response is not None and not login_response.ok:
        body = response_text(login_response)
        state.screenshot("login-failed")
        raise AuthenticationError(
            f'Login failed for role "{parsed.value}". Status {login_response.status} '
            f"{login_response.status_text}. Response: {body}",
            login_response.status,
            body,
        )

    wait_quietly(page, NAVIGATION_TIMEOUT_MS)
    try:
        page.wait_for_url(
            lambda url: not url_path(url).endswith(UI_LOGIN_PATH),
            timeout=NAVIGATION_TIMEOUT_MS,
        )
    except PlaywrightTimeoutError:
        logger.warning("Still on the login page after submitting as %s", parsed.value)


@when("I open the Sales list page")
def step_open_sales_list(context: Context) -> None:
    state = context.state
    page = open_route(state, UI_SALES_PATH, "open-sales-list")

    try:
        locators.wait_for_any(
            page,
            (*locators.SALE_ROWS, locators.EMPTY_STATE, *locators.SALES_CONTAINER),
            NAVIGATION_TIMEOUT_MS,
        )
    except PlaywrightTimeoutError:
        state.screenshot("sales-open-fail")
        raise


@when("I open the Sell Plant page")
def step_open_sell_page(context: Context) -> None:
    open_route(context.state, UI_SALES_NEW_PATH, "open-sell-page")


@then("Sell Plant page should load")
def step_sell_page_loaded(context: Context) -> None:
    page = page_of(context)
    expect(page.locator(locators.PLANT_SELECT).first).to_be_visible(
        timeout=NAVIGATION_TIMEOUT_MS
    )
    expect(page.locator(locators.QUANTITY_INPUT).first).to_be_visible(
        timeout=NAVIGATION_TIMEOUT_MS
    )


@then("I should see sales list container")
def step_sales_container_visible(context: Context) -> None:
    state = context.state
    page = state.require_page()
    evidence = (
        locators.TABLE,
        *locators.SALE_ROWS,
        locators.EMPTY_STATE,
        *locators.PAGINATION,
        "body",
    )

    try:
        locators.wait_for_any(page, evidence, NAVIGATION_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        fail_without_evidence(
            state,
            "sales-container-not-found",
            "sales page elements (table/rows/empty/pagination)",
        )


@then("I should see sales records or empty state")
def step_records_or_empty_state(context: Context) -> None:
    state = context.state
    page = state.require_page()

    has_rows = locators.count_any(page, locators.SALE_ROWS) > 0
    has_empty = page.locator(locators.EMPTY_STATE).count() > 0

    if not has_rows and not has_empty:
        fail_without_evidence(state, "sales-no-rows-no-empty", "sale rows or empty state")


@then("I should see pagination controls when records exceed one page")
def step_pagination_visible_if_present(context: Context) -> None:
    page = page_of(context)
    pagination = locators.first_present(page, locators.PAGINATION)
    if pagination is not None:
        expect(pagination).to_be_visible(timeout=NAVIGATION_TIMEOUT_MS)


@when('I sort by "{column}"')
def step_sort_by(context: Context, column: str) -> None:
    state = context.state
    page = state.require_page()

    header = locators.first_present(page, locators.column_header(column))
    if header is not None:
        header.click()
        wait_quietly(page, NAVIGATION_TIMEOUT_MS)
        return

    logger.info("No %r column header, sorting through query parameters", column)
    field = quote(sort_field_for(column))
    page.goto(
        state.settings.url(f"{UI_SALES_PATH}?page=0&sortField={field}&sortDir=asc"),
        wait_until="domcontentloaded",
    )
    wait_quietly(page, NAVIGATION_TIMEOUT_MS)


@then('sales should be sorted by "{column}" in "{order}" order')
def step_sorted_by(context: Context, column: str, order: str) -> None:
    page = page_of(context)
    query = parse_qs(urlparse(page.url).query)
    sort_field = query.get("sortField", [None])[0]
    sort_dir = query.get("sortDir", [None])[0]

    if sort_field and sort_dir:
        expected = sort_field_for(column)
        assert sort_field.lower() == expected.lower(), (
            f"Sorted by {sort_field}, expected {expected}"
        )
        assert sort_dir.lower() == order.lower(), f"Sort direction {sort_dir}, expected {order}"
        return

    expect(page.locator(locators.TABLE).first).to_be_visible(timeout=NAVIGATION_TIMEOUT_MS)


@given("there are no sales records")
def step_no_sales_records(context: Context) -> None:
    api, token = admin_api(context.state)
    with api:
        response = api.list_sales(token)
        if not is_success(response.status_code):
            raise PreconditionError(
                f"Failed to fetch sales list ({response.status_code}): {response.text}"
            )

        sales = extract_sale_list(response.json())
        if sales is None:
            raise PreconditionError("Sales list response is not an array or {content:[]}")

        for sale in sales:
            sale_id = extract_sale_id(sale)
            if not sale_id:
                continue
            deleted = api.delete_sale(sale_id, token)
            if not is_success(deleted.status_code):
                raise PreconditionError(
                    f"Failed to delete sale {sale_id} ({deleted.status_code}): {deleted.text}"
                )
        logger.info("Deleted %d existing sales", len(sales))


@then('I should see empty-state message "{message}"')
def step_empty_state_message(context: Context, message: str) -> None:
    state = context.state
    page = state.require_page()

    for candidate in (
        page.get_by_text(message, exact=False).first,
        page.locator(locators.EMPTY_STATE).first,
    ):
        if locators.is_visible(candidate):
            expect(candidate).to_be_visible(timeout=LONG_WAIT_TIMEOUT_MS)
            return

    fail_without_evidence(
        state,
        "empty-state-missing",
        f'empty state ("{message}" or {locators.EMPTY_STATE})',
    )


@then('I should not see the "{label}" button')
def step_button_absent(context: Context, label: str) -> None:
    page = page_of(context)
    expect(page.get_by_text(label, exact=False)).to_have_count(0)


@when('I select plant "{plant_id}"')
def step_select_plant(context: Context, plant_id: str) -> None:
    page = page_of(context)
    select = page.locator(locators.PLANT_SELECT).first
    select.wait_for(state="visible", timeout=LONG_WAIT_TIMEOUT_MS)

    try:
        page.wait_for_function(
            OPTIONS_LOADED_SCRIPT,
            arg=select.element_handle(),
            timeout=LONG_WAIT_TIMEOUT_MS,
        )
    except PlaywrightTimeoutError:
        logger.debug("Plant dropdown still has a single option")

    value = match_option(select.evaluate(SELECT_OPTIONS_SCRIPT), plant_id)
    if value is None:
        raise PreconditionError(f'Plant option "{plant_id}" not found in dropdown.')
    select.select_option(value=value)


@when("I select the first available plant")
def step_select_first_plant(context: Context) -> None:
    choose_first_plant(page_of(context))


@when("I enter sell quantity {quantity:d}")
def step_enter_quantity(context: Context, quantity: int) -> None:
    page_of(context).locator(locators.QUANTITY_INPUT).first.fill(str(quantity))


@when("I submit the sell form with missing required fields")
def step_submit_empty_form(context: Context) -> None:
    page = page_of(context)
    locators.combine(page, locators.CONFIRM_BUTTON).first.click(timeout=LONG_WAIT_TIMEOUT_MS)


@then("I should see required field validation messages")
def step_required_validation(context: Context) -> None:
    state = context.state
    page = state.require_page()

    found = resolve_first(
        [
            (
                "visible error",
                lambda: locators.first_visible(page, locators.ANY_VALIDATION) is not None,
            ),
            ("aria-invalid", lambda: page.locator(locators.ARIA_INVALID).count() > 0),
            ("native invalid field", lambda: bool(page.evaluate(NATIVE_INVALID_SCRIPT))),
        ]
    )

    if found is None:
        fail_without_evidence(
            state,
            "required-validation-missing",
            "validation evidence (no error text, aria-invalid, or HTML5 invalid)",
        )


@when("I confirm sale")
def step_confirm_sale(context: Context) -> None:
    state = context.state
    page = state.require_page()
    confirm = locators.combine(page, locators.CONFIRM_BUTTON).first

    response = capture_response(
        page,
        lambda: confirm.click(timeout=LONG_WAIT_TIMEOUT_MS),
        is_sale_post,
        NAVIGATION_TIMEOUT_MS,
    )
    page.wait_for_timeout(CONFIRM_SETTLE_DELAY_MS)

    if response is not None:
        state.last_sale_post_status = response.status
        state.last_sale_post_body = response_text(response)
        logger.info("Sale POST answered %s", response.status)


@then("I should be on the Sales list page")
def step_on_sales_list(context: Context) -> None:
    page_of(context).wait_for_url(
        lambda url: url_path(url).startswith(UI_SALES_PATH),
        timeout=LONG_WAIT_TIMEOUT_MS,
    )


@then('I should see validation error "{message}"')
def step_validation_error(context: Context, message: str) -> None:
    state = context.state
    page = state.require_page()

    found = resolve_first(
        [
            (
                "visible error",
                lambda: locators.first_visible(page, locators.SALE_ERROR) is not None,
            ),
            (
                "rejected sale request",
                lambda: state.last_sale_post_status is not None
                and state.last_sale_post_status >= 400,
            ),
            ("invalid quantity", lambda: bool(page.evaluate(QUANTITY_INVALID_SCRIPT))),
        ]
    )

    if found is None:
        fail_without_evidence(
            state,
            "validation-error-missing",
            f'validation for "{message}" (no visible error, no 4xx POST response, '
            "no HTML5 invalid)",
        )


@then("the sale should not be created")
def step_sale_not_created(context: Context) -> None:
    state = context.state
    page = state.require_page()

    still_on_sell_page = UI_SALES_NEW_PATH in page.url
    has_error = locators.count_any(page, locators.SALE_REJECTED_EVIDENCE) > 0

    if not still_on_sell_page and not has_error:
        fail_without_evidence(
            state,
            "unexpected-sale-state",
            "sign that the sale was rejected (not on sell page, no validation visible)",
        )


@when("I click Delete on the first sale")
def step_click_delete_first_sale(context: Context) -> None:
    state = context.state
    page = state.require_page()

    first_row = page.locator(locators.FIRST_TABLE_ROW).first
    expect(first_row).to_be_visible(timeout=NAVIGATION_TIMEOUT_MS)

    delete_button = locators.first_visible(first_row, locators.ROW_DELETE_BUTTON)
    if delete_button is None:
        fail_without_evidence(state, "delete-button-missing", "delete button in first sale row")

    dialog = arm_dialog(page)
    delete_button.click(timeout=NAVIGATION_TIMEOUT_MS, force=True)

    if not dialog.handled:
        raise EvidenceNotFoundError("delete confirmation dialog")

    state.last_dialog_message = dialog.message
    state.dialog_accepted = True


@then("I should see a delete confirmation prompt")
def step_delete_prompt_seen(context: Context) -> None:
    message = context.state.last_dialog_message
    if not message:
        raise PreconditionError("No dialog captured. Delete confirmation did not appear.")

    assert ARE_YOU_SURE.search(message), f"Unexpected confirmation text: {message!r}"
    assert DELETE_WORD.search(message), f"Unexpected confirmation text: {message!r}"


@when("I accept the delete confirmation")
def step_accept_delete(context: Context) -> None:
    state = context.state
    if not state.dialog_accepted:
        raise PreconditionError(
            "No pending dialog to accept. Ensure you clicked Delete first."
        )
    state.dialog_accepted = False


@then('I should see success message "{message}"')
def step_success_message(context: Context, message: str) -> None:
    page = page_of(context)

    exact = page.get_by_text(message, exact=False).first
    if locators.is_visible(exact):
        expect(exact).to_be_visible(timeout=NAVIGATION_TIMEOUT_MS)
        return

    locators.wait_for_any(page, locators.SUCCESS_ALERT, NAVIGATION_TIMEOUT_MS)


@given('plant "{plant_id}" has stock at least {minimum:d} (via API)')
def step_ui_plant_minimum_stock(context: Context, plant_id: str, minimum: int) -> None:
    state = context.state
    stock = fetch_stock(state, plant_id)
    state.plant_id = plant_id
    state.min_stock = minimum

    assert stock >= minimum, f"Plant {plant_id} has stock {stock}, expected >= {minimum}"


@given('I capture current stock for plant "{plant_id}" (via API)')
def step_ui_capture_stock(context: Context, plant_id: str) -> None:
    state = context.state
    state.plant_id = plant_id
    state.before_stock = fetch_stock(state, plant_id)
    logger.info("Plant %s stock before sale: %s", plant_id, state.before_stock)


@then('stock for plant "{plant_id}" should be decreased by {quantity:d} (via API)')
def step_ui_stock_decreased(context: Context, plant_id: str, quantity: int) -> None:
    state = context.state
    if state.before_stock is None:
        raise PreconditionError(
            f"No stock captured for plant {plant_id}. Capture it before selling."
        )

    after_stock = fetch_stock(state, plant_id)
    expected = state.before_stock - quantity
    assert after_stock == expected, (
        f"Plant {plant_id} stock is {after_stock}, expected {expected}"
    )


@given("there is at least 1 sale record (via API)")
def step_ui_sale_exists_via_api(context: Context) -> None:
    state = context.state
    api, token = admin_api(state)
    with api:
        response = api.list_sales(token)
        assert is_success(response.status_code), (
            f"Failed to fetch sales list ({response.status_code}): {response.text}"
        )
        if extract_sale_list(response.json()):
            return

        plant_id = state.plant_id
        if plant_id is None:
            raise PreconditionError(
                "No sales exist and no plant is known to create one. "
                "Name a plant in an earlier step."
            )
        created = api.sell(plant_id, 1, token)
        assert is_success(created.status_code), (
            f"Failed to create sale ({created.status_code}): {created.text}"
        )
        state.created_sale_id = extract_sale_id(created.json())


@given("there is at least one sale record")
def step_ui_sale_exists(context: Context) -> None:
    state = context.state
    page = state.require_page()

    page.goto(state.settings.url(UI_SALES_PATH), wait_until="domcontentloaded")
    page.wait_for_timeout(SETTLE_DELAY_MS)

    rows = locators.count_any(page, locators.SALE_ROWS)
    attempts = 0
    while rows < 1:
        if attempts >= MAX_SEED_ATTEMPTS:
            fail_without_evidence(
                state,
                "seed-sale-failed",
                f"sale rows after {attempts} attempts to create one through the form",
            )
        attempts += 1

        page.goto(state.settings.url(UI_SALES_NEW_PATH), wait_until="domcontentloaded")
        page.wait_for_timeout(SETTLE_DELAY_MS)
        page.locator(locators.QUANTITY_INPUT).first.wait_for(
            state="visible", timeout=LONG_WAIT_TIMEOUT_MS
        )

        choose_first_plant(page, fallback=SEED_OPTION_FALLBACK)
        page.locator(locators.QUANTITY_INPUT).first.fill("1")
        locators.combine(page, locators.CONFIRM_BUTTON).first.click(
            timeout=LONG_WAIT_TIMEOUT_MS
        )

        page.wait_for_url(is_sales_list_url, timeout=LONG_WAIT_TIMEOUT_MS)
        rows = locators.count_any(page, locators.SALE_ROWS)
