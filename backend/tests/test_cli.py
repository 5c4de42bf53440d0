import pytest

from bevledger.services import stock_service


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


def test_balance_command(runner):
    item = stock_service.create_item(name="Mango Juice 500ml", family="product")
    stock_service.record_opening_stock(item_id=item.id, date="2024-01-01", quantity=100)
    stock_service.record_inflow(item_id=item.id, quantity=20, source="Production", date="2024-01-05")

    result = runner.invoke(args=["stock", "balance", str(item.id), "--as-of", "2024-02-01"])

    assert result.exit_code == 0
    assert "as of 2024-02-01: 120" in result.output
    assert "baseline: 100 on 2024-01-01 (exact)" in result.output


def test_balance_command_unknown_item(runner):
    result = runner.invoke(args=["stock", "balance", "9999"])

    assert result.exit_code != 0
    assert "not found" in result.output


def test_summary_command(runner):
    category = stock_service.create_category(name="Sweeteners")
    item = stock_service.create_item(name="Sugar", family="material", category_id=category.id)
    stock_service.record_inflow(item_id=item.id, quantity=15, source="Return", date="2024-01-05")

    result = runner.invoke(args=["stock", "summary", "--family", "material"])

    assert result.exit_code == 0
    assert "Sugar" in result.output
    assert "Sweeteners: 15 (1 items)" in result.output
    assert "Total: 15" in result.output


def test_summary_command_empty(runner):
    result = runner.invoke(args=["stock", "summary", "--family", "product"])

    assert "No product items found." in result.output


def test_check_openings_reports_mismatch(runner):
    item = stock_service.create_item(name="Passion 300ml", family="product")
    stock_service.record_inflow(item_id=item.id, quantity=40, source="Production", date="2024-01-05")
    stock_service.record_opening_stock(item_id=item.id, date="2024-02-01", quantity=35)

    result = runner.invoke(args=["stock", "check-openings", "--family", "product"])

    assert "FAIL Passion 300ml on 2024-02-01: recorded 35, calculated 40 (difference -5)" in result.output
    assert "1 mismatched opening stock(s)." in result.output
