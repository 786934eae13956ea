import pytest
from sqlalchemy.exc import OperationalError

from stockledger.errors import PersistenceError
from stockledger.extensions import db
from stockledger.models import LowStockAlert, Transaction
from stockledger.services import alert_service, inventory_service, sales_service
from stockledger.services.sales_service import LineItem
from stockledger.services.concurrency import run_atomic


def _raise(product_id, stock, threshold):
    return run_atomic(
        lambda: alert_service.check_and_raise(product_id, stock, threshold),
        label="test",
    )


def _open_alerts(product_id):
    return (
        db.session.query(LowStockAlert)
        .filter_by(product_id=product_id, dismissed=False)
        .all()
    )


def test_above_threshold_is_noop(make_product):
    product = make_product(stock=10, low_stock_threshold=2)

    assert _raise(product.id, 3, 2) is None
    assert _open_alerts(product.id) == []


def test_at_threshold_raises(make_product):
    product = make_product(stock=10, low_stock_threshold=2)

    alert = _raise(product.id, 2, 2)

    assert alert is not None
    assert (alert.current_stock, alert.threshold, alert.dismissed) == (2, 2, False)


def test_repeated_checks_produce_one_alert(make_product):
    product = make_product(stock=10, low_stock_threshold=4)

    first = _raise(product.id, 4, 4)
    second = _raise(product.id, 4, 4)
    third = _raise(product.id, 1, 4)

    assert first.id == second.id == third.id
    assert len(_open_alerts(product.id)) == 1


def test_dismissed_alert_allows_new_one(make_product):
    product = make_product(stock=10, low_stock_threshold=4)
    first = _raise(product.id, 3, 4)

    alert_service.dismiss_alert(first.id, product.business_id)
    second = _raise(product.id, 2, 4)

    assert second.id != first.id
    assert second.current_stock == 2
    assert [a.id for a in _open_alerts(product.id)] == [second.id]
    assert db.session.query(LowStockAlert).filter_by(product_id=product.id).count() == 2


def test_list_open_alerts_is_scoped(make_product, other_business):
    mine = make_product(name="Mine", stock=1, low_stock_threshold=2)
    make_product(name="Theirs", stock=1, low_stock_threshold=2, business_id=other_business.id)

    alerts = alert_service.list_open_alerts(mine.business_id)

    assert [a.product_id for a in alerts] == [mine.id]


def test_dismiss_alert_of_other_business_is_not_found(make_product, other_business):
    product = make_product(stock=1, low_stock_threshold=2)
    alert = _open_alerts(product.id)[0]

    with pytest.raises(alert_service.AlertNotFoundError):
        alert_service.dismiss_alert(alert.id, other_business.id)

    assert _open_alerts(product.id)[0].dismissed is False


def _lose_first_lookup(monkeypatch):
    """Make the first open-alert lookup miss, as if another writer had not committed yet."""
    real_get_open_alert = alert_service.get_open_alert
    calls = []

    def racing_lookup(product_id):
        calls.append(product_id)
        if len(calls) == 1:
            return None
        return real_get_open_alert(product_id)

    monkeypatch.setattr(alert_service, "get_open_alert", racing_lookup)
    return calls


def test_concurrent_insert_falls_back_to_open_alert(make_product, monkeypatch):
    product = make_product(stock=3, low_stock_threshold=4)
    existing = _open_alerts(product.id)[0]
    calls = _lose_first_lookup(monkeypatch)

    alert = _raise(product.id, 2, 4)

    assert len(calls) == 2
    assert alert.id == existing.id
    assert len(_open_alerts(product.id)) == 1


def test_checkout_survives_alert_insert_conflict(make_product, monkeypatch):
    product = make_product(stock=4, low_stock_threshold=5)
    existing = _open_alerts(product.id)[0]
    _lose_first_lookup(monkeypatch)

    txn = sales_service.checkout(product.business_id, 7, [LineItem(product.id, 1)])

    assert db.session.query(Transaction).filter_by(id=txn.id).count() == 1
    assert inventory_service.get_stock(product.id, product.business_id) == 3
    assert [a.id for a in _open_alerts(product.id)] == [existing.id]


def test_dismiss_store_failure_is_persistence_error(make_product, monkeypatch):
    product = make_product(stock=1, low_stock_threshold=2)
    alert = _open_alerts(product.id)[0]

    def broken_clock():
        raise OperationalError("UPDATE low_stock_alerts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(alert_service, "utcnow", broken_clock)

    with pytest.raises(PersistenceError):
        alert_service.dismiss_alert(alert.id, product.business_id)

    assert _open_alerts(product.id)[0].id == alert.id
