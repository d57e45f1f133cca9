"""Many order requests racing for the same stock, one session per worker."""
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import order_in
from pharmacy.errors import InsufficientStock, InvalidTransition, NotPending, OrderNotFound
from pharmacy.orders import OrderManager


def _race(session_factory, write_mode, calls):
    """Run every callable(manager) at once; return results or raised errors in order."""
    barrier = threading.Barrier(len(calls))

    def _worker(call):
        session = session_factory()
        try:
            manager = OrderManager(session, write_mode=write_mode)
            barrier.wait()
            try:
                call(manager)
                return None
            except Exception as exc:
                return exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_worker, calls))


def _place(customer_id, *items):
    return lambda manager: manager.create_order(order_in(customer_id, *items))


def test_unit_orders_exhaust_stock_exactly(session_factory, write_mode, customer, make_product, stock_of):
    product_id = make_product(stock=5).id
    customer_id = customer.id

    results = _race(session_factory, write_mode, [_place(customer_id, (product_id, 1))] * 10)

    errors = [r for r in results if r is not None]
    assert len(errors) == 5
    assert all(isinstance(e, InsufficientStock) for e in errors)
    assert stock_of(product_id) == 0


def test_mixed_quantities_never_oversell(session_factory, write_mode, customer, make_product, stock_of):
    product_id = make_product(stock=6).id
    customer_id = customer.id
    quantities = [3, 2, 4, 1, 5, 2]

    results = _race(
        session_factory, write_mode, [_place(customer_id, (product_id, q)) for q in quantities]
    )

    sold = sum(q for q, r in zip(quantities, results) if r is None)
    assert all(isinstance(r, InsufficientStock) for r in results if r is not None)
    assert 0 < sold <= 6
    assert stock_of(product_id) == 6 - sold


def test_multi_item_orders_keep_all_or_nothing(session_factory, write_mode, customer, make_product, stock_of):
    a_id = make_product(stock=4).id
    b_id = make_product(stock=4).id
    customer_id = customer.id
    # half the orders list A first, half B first
    calls = [_place(customer_id, (a_id, 1), (b_id, 1))] * 4 + [_place(customer_id, (b_id, 1), (a_id, 1))] * 4

    results = _race(session_factory, write_mode, calls)

    placed = sum(1 for r in results if r is None)
    assert all(isinstance(r, InsufficientStock) for r in results if r is not None)
    assert stock_of(a_id) == 4 - placed
    assert stock_of(b_id) == 4 - placed
    if write_mode == "transaction":
        # failed orders hold nothing, so every unit ends up sold
        assert placed == 4


def test_concurrent_deletes_release_stock_once(session_factory, write_mode, db, customer, make_product, stock_of):
    product_id = make_product(stock=10).id
    order_id = OrderManager(db, write_mode=write_mode).create_order(order_in(customer.id, (product_id, 4))).id
    assert stock_of(product_id) == 6

    results = _race(session_factory, write_mode, [lambda m: m.delete_order(order_id)] * 4)

    errors = [r for r in results if r is not None]
    assert len(errors) == 3
    assert all(isinstance(e, (NotPending, OrderNotFound)) for e in errors)
    assert stock_of(product_id) == 10


def test_cancel_racing_delete(session_factory, write_mode, db, customer, make_product, stock_of):
    product_id = make_product(stock=10).id
    order_id = OrderManager(db, write_mode=write_mode).create_order(order_in(customer.id, (product_id, 3))).id

    results = _race(
        session_factory,
        write_mode,
        [lambda m: m.update_status(order_id, "cancelled"), lambda m: m.delete_order(order_id)],
    )

    errors = [r for r in results if r is not None]
    assert len(errors) == 1
    assert isinstance(errors[0], (InvalidTransition, NotPending, OrderNotFound))
    assert stock_of(product_id) == 10


@pytest.mark.parametrize("workers", [2, 8])
def test_racing_status_updates_have_one_winner(session_factory, db, customer, make_product, workers):
    product_id = make_product(stock=10).id
    order_id = OrderManager(db).create_order(order_in(customer.id, (product_id, 1))).id

    results = _race(
        session_factory, "transaction", [lambda m: m.update_status(order_id, "processing")] * workers
    )

    errors = [r for r in results if r is not None]
    assert len(errors) == workers - 1
    assert all(isinstance(e, InvalidTransition) for e in errors)
