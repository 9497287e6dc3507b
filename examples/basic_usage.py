"""Basic usage example for sheetforge."""

import random
from datetime import datetime, timedelta
from pathlib import Path

from sheetforge import AnalyticsStore, Definition, Filter, Ordering

TABLES = Path(__file__).parent / "tables"


def seed(store: AnalyticsStore) -> None:
    """Fill the in-memory database with a few months of fake traffic."""
    rng = random.Random(42)
    start = datetime(2024, 1, 1)
    countries = ["US", "UK", "DE", "FR"]

    sessions = [
        (
            i,
            rng.choice(countries),
            rng.choice("dmt"),
            start + timedelta(minutes=rng.randint(0, 60 * 24 * 75)),
        )
        for i in range(500)
    ]
    orders = [
        (
            i,
            rng.choice(countries),
            round(rng.uniform(10, 300), 2),
            rng.choice(["completed"] * 9 + ["refunded"]),
            start + timedelta(minutes=rng.randint(0, 60 * 24 * 75)),
        )
        for i in range(120)
    ]

    store.executor.create_table_from_data(
        "sessions",
        ["id INTEGER", "country", "device_code", "started_at TIMESTAMP"],
        sessions,
    )
    store.executor.create_table_from_data(
        "orders",
        ["id INTEGER", "country", "amount DECIMAL(10, 2)", "status", "ordered_at TIMESTAMP"],
        orders,
    )


def main():
    with AnalyticsStore(TABLES) as store:
        seed(store)

        print("=" * 60)
        print("sheetforge demo")
        print("=" * 60)

        # metrics from two tables, merged by month. march has no orders
        # after the 15th but still shows up, april shows up with zeros
        print("\n1. Visits and revenue by month:")
        q1 = (
            Definition.make(["visits", "revenue"])
            .add_dimension("month")
            .between(datetime(2024, 1, 1), datetime(2024, 4, 30, 23, 59, 59))
        )
        for row in store.run(q1).to_array():
            print(f"   {row['month']}: {row['visits']:>4} visits  ${row['revenue']:>10,.2f}")

        print("\n2. Top countries by revenue:")
        by_country = Definition(
            metrics=("revenue", "orders"),
            dimensions=("country",),
            orderings=(Ordering(column="revenue", direction="desc"),),
        )
        for row in store.run(by_country).to_array():
            print(f"   {row['country']}: ${row['revenue']:,.2f} ({row['orders']} orders)")

        print("\n3. Mobile and desktop visits only:")
        devices = (
            Definition.make("visits")
            .add_dimension("device")
            .add_filter(Filter(column="device", operator="in", value=["Mobile", "Desktop"]))
        )
        for row in store.run(devices).to_array():
            print(f"   {row['device']}: {row['visits']}")

        print("\n4. Generated SQL:")
        for table, sql in store.sql(q1).items():
            print(f"-- {table}\n{sql}\n")


if __name__ == "__main__":
    main()
