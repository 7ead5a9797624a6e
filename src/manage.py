"""Pre-bill store management CLI.

Creates and drops the key-value table of the SQL store, and prints the stored
state of a session.

Usage:
    python src/manage.py setup-db                      # Create the store table
    python src/manage.py drop-db                       # Drop the store table
    python src/manage.py show-session <session_id>     # Print a session's pre-bill
"""

import argparse
import os
import sys


def _sql_store(database_uri=None):
    from prebill.store.sql_adapter import SqlKeyValueStore

    return SqlKeyValueStore(database_uri=database_uri or os.environ.get("PREBILL_DATABASE_URI", "sqlite:///prebill.db"))


def setup_database(database_uri=None):
    store = _sql_store(database_uri)
    print(f"Creating pre-bill store at {store.engine.url.render_as_string()}...")
    store.setup()
    print("Done.")


def drop_database(database_uri=None):
    store = _sql_store(database_uri)
    print(f"Dropping pre-bill store at {store.engine.url.render_as_string()}...")
    store.teardown()
    print("Done.")


def show_session(session_id, database_uri=None):
    from protean.utils.globals import current_domain

    from prebill.cart.cart import Cart
    from prebill.domain import prebill
    from prebill.packing.packing import PackingLedger

    prebill.init()
    store = _sql_store(database_uri)
    with prebill.domain_context():
        cart_repository = current_domain.repository_for(Cart)
        packing_repository = current_domain.repository_for(PackingLedger)
        cart_repository.store = packing_repository.store = store
        cart = cart_repository.get(session_id)
        ledger = packing_repository.get(session_id)

    if cart.is_empty:
        print(f"Session {session_id}: pre-bill is empty")
    for line in cart.lines:
        print(
            f"  shop {line.shop_ref:>6}  product {line.product_ref:>6}  "
            f"{line.quantity} x {line.unit_price} = {line.subtotal}"
        )
    print(f"  grand total: {cart.grand_total()}")
    for shop_ref, status in ledger.statuses.items():
        print(f"  packing shop {shop_ref}: {status.value}")


def main():
    parser = argparse.ArgumentParser(description="Pre-bill store management")
    parser.add_argument("--database-uri", help="SQLAlchemy URL (default: $PREBILL_DATABASE_URI)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create the key-value table")
    subparsers.add_parser("drop-db", help="Drop the key-value table")

    show_parser = subparsers.add_parser("show-session", help="Print a session's stored pre-bill")
    show_parser.add_argument("session_id")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database(args.database_uri)
    elif args.command == "drop-db":
        drop_database(args.database_uri)
    elif args.command == "show-session":
        show_session(args.session_id, args.database_uri)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
