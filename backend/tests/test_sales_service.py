import pytest
from sqlalchemy.exc import OperationalError

from stockledger.errors import (
    EmptyCartError,
    InsufficientStockError,
    PersistenceError,
    ProductNotFoundError,
)
from stockledger.extensions import db
from stockledger.models import LowStockAlert, Product, Transaction, TransactionItem
from stockledger.services import alert_service, inventory_service, sales_service
from stockledger.services.sales_service import LineItem


def _stock(product):
    return inventory_service.get_stock(product.id, product.business_id)


def _transaction_count():
    return db.session.query(Transaction).count()


def test_checkout_prices_and_persists(business, make_product):
    a = make_product(name="Tea", cost_price_cents=600, sale_price_cents=1000, stock=10)
    b = make_product(name="Cake", cost_price_cents=1500, sale_price_cents=2000, stock=10)

    txn = sales_service.checkout(
        business_id=business.id,
        staff_id=7,
        items=[LineItem(a.id, 2), LineItem(b.id, 1)],
        discount_percent=10,
        payment_method="card",
        notes="table 4",
    )

    assert txn.id is not None
    assert txn.subtotal_cents == 4000
    assert txn.discount_cents == 400
    assert txn.discount_bps == 1000
    assert txn.tax_cents == 180
    assert txn.total_cents == 3780
    assert txn.profit_cents == 900
    assert txn.payment_method == "CARD"
    assert txn.staff_id == 7
    assert txn.notes == "table 4"

    assert [(i.product_name, i.quantity, i.unit_price_cents, i.cost_price_cents, i.line_total_cents)
            for i in txn.items] == [
        ("Tea", 2, 1000, 600, 2000),
        ("Cake", 1, 2000, 1500, 2000),
    ]
    assert _stock(a) == 8
    assert _stock(b) == 9


def test_items_snapshot_prices_at_sale_time(business, make_product):
    product = make_product(name="Tea", sale_price_cents=1000, cost_price_cents=600)
    txn = sales_service.checkout(business.id, 7, [LineItem(product.id, 1)])

    product = db.session.get(Product, product.id)
    product.name = "Green Tea"
    product.sale_price_cents = 1500
    product.cost_price_cents = 900
    db.session.commit()

    item = db.session.query(TransactionItem).filter_by(transaction_id=txn.id).one()
    assert (item.product_name, item.unit_price_cents, item.cost_price_cents) == ("Tea", 1000, 600)


def test_empty_cart_is_rejected_without_side_effects(business, make_product):
    product = make_product(stock=5)

    with pytest.raises(EmptyCartError) as exc_info:
        sales_service.checkout(business.id, 7, [])

    assert exc_info.value.stage == sales_service.VALIDATING
    assert _transaction_count() == 0
    assert _stock(product) == 5


def test_unknown_product_fails_whole_cart(business, make_product):
    product = make_product(stock=5)

    with pytest.raises(ProductNotFoundError) as exc_info:
        sales_service.checkout(business.id, 7, [LineItem(product.id, 1), LineItem(424242, 1)])

    assert exc_info.value.product_id == 424242
    assert _transaction_count() == 0
    assert _stock(product) == 5


def test_product_of_other_business_is_not_found(business, other_business, make_product):
    mine = make_product(name="Mine", stock=5)
    theirs = make_product(name="Theirs", stock=5, business_id=other_business.id)

    with pytest.raises(ProductNotFoundError):
        sales_service.checkout(business.id, 7, [LineItem(mine.id, 1), LineItem(theirs.id, 1)])

    assert _stock(mine) == 5
    assert _stock(theirs) == 5


def test_pre_check_reports_available_stock(business, make_product):
    product = make_product(stock=2)

    with pytest.raises(InsufficientStockError) as exc_info:
        sales_service.checkout(business.id, 7, [LineItem(product.id, 3)])

    assert exc_info.value.details == {"product_id": product.id, "requested": 3, "available": 2}
    assert exc_info.value.stage == sales_service.VALIDATING


def test_quantities_are_summed_across_lines_of_same_product(business, make_product):
    product = make_product(stock=5)

    with pytest.raises(InsufficientStockError) as exc_info:
        sales_service.checkout(business.id, 7, [LineItem(product.id, 3), LineItem(product.id, 3)])

    assert exc_info.value.requested == 6
    assert _stock(product) == 5

    txn = sales_service.checkout(business.id, 7, [LineItem(product.id, 2), LineItem(product.id, 3)])
    assert [i.position for i in txn.items] == [1, 2]
    assert _stock(product) == 0


def test_decrement_failure_on_last_line_rolls_back_everything(business, make_product, monkeypatch):
    first = make_product(name="First", stock=10)
    last = make_product(name="Last", stock=10)
    real_try_decrement = inventory_service.try_decrement

    def losing_race(product_id, business_id, quantity):
        # Pre-check passed, but another sale drained the last product meanwhile
        if product_id == last.id:
            quantity += 1000
        return real_try_decrement(product_id, business_id, quantity)

    monkeypatch.setattr(inventory_service, "try_decrement", losing_race)

    with pytest.raises(InsufficientStockError) as exc_info:
        sales_service.checkout(business.id, 7, [LineItem(first.id, 2), LineItem(last.id, 1)])

    assert exc_info.value.product_id == last.id
    assert exc_info.value.stage == sales_service.STOCK_ADJUSTING
    assert _transaction_count() == 0
    assert db.session.query(TransactionItem).count() == 0
    assert _stock(first) == 10
    assert _stock(last) == 10


def test_database_failure_surfaces_as_persistence_error(business, make_product, monkeypatch):
    product = make_product(stock=3, low_stock_threshold=0)

    def locked(*args, **kwargs):
        raise OperationalError("INSERT INTO low_stock_alerts", {}, Exception("database is locked"))

    monkeypatch.setattr(alert_service, "check_and_raise", locked)

    with pytest.raises(PersistenceError) as exc_info:
        sales_service.checkout(business.id, 7, [LineItem(product.id, 1)])

    assert exc_info.value.stage == sales_service.ALERT_CHECKING
    assert _transaction_count() == 0
    assert _stock(product) == 3


def test_checkout_raises_low_stock_alert(business, make_product):
    product = make_product(stock=3, low_stock_threshold=2)

    sales_service.checkout(business.id, 7, [LineItem(product.id, 1)])

    alerts = db.session.query(LowStockAlert).filter_by(product_id=product.id).all()
    assert len(alerts) == 1
    assert (alerts[0].current_stock, alerts[0].threshold) == (2, 2)


def test_repeated_low_stock_sales_keep_one_open_alert(business, make_product):
    product = make_product(stock=4, low_stock_threshold=3)

    for _ in range(4):
        sales_service.checkout(business.id, 7, [LineItem(product.id, 1)])

    assert _stock(product) == 0
    assert db.session.query(LowStockAlert).filter_by(product_id=product.id, dismissed=False).count() == 1


def test_business_without_tax_rate_charges_no_tax(db_session, other_business):
    product = inventory_service.create_product(
        business_id=other_business.id, name="Plain", sale_price_cents=500, cost_price_cents=100, stock=1
    )

    txn = sales_service.checkout(other_business.id, None, [LineItem(product.id, 1)])

    assert txn.tax_cents == 0
    assert txn.total_cents == 500


def test_invalid_payment_method_and_quantity(business, make_product):
    product = make_product()

    with pytest.raises(ValueError):
        sales_service.checkout(business.id, 7, [LineItem(product.id, 1)], payment_method="BARTER")
    with pytest.raises(ValueError):
        sales_service.checkout(business.id, 7, [LineItem(product.id, 0)])
    assert _transaction_count() == 0


def test_list_transactions_newest_first_and_scoped(business, other_business, make_product):
    product = make_product(stock=10)
    theirs = make_product(name="Theirs", stock=10, business_id=other_business.id)
    ids = [sales_service.checkout(business.id, 7, [LineItem(product.id, 1)]).id for _ in range(3)]
    sales_service.checkout(other_business.id, 8, [LineItem(theirs.id, 1)])

    listed = sales_service.list_transactions(business.id)
    assert [t.id for t in listed] == list(reversed(ids))

    assert len(sales_service.list_transactions(business.id, limit=2)) == 2
    assert sales_service.get_transaction(ids[0], other_business.id) is None
    assert sales_service.get_transaction(ids[0], business.id).id == ids[0]
