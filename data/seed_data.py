"""
Demo employees for local runs (SEED_DEMO_DATA=true with the in-memory store).
"""

from datetime import date

DEMO_EMPLOYEES = [
    {
        "id": "E001",
        "name": "John Doe",
        "email": "john.doe@company.com",
        "department": "Engineering",
        "joining_date": date(2022, 1, 15),
        "leave_balance": 20,
    },
    {
        "id": "E002",
        "name": "Priya Sharma",
        "email": "priya.sharma@company.com",
        "department": "Marketing",
        "joining_date": date(2021, 6, 10),
        "leave_balance": 18,
    },
    {
        "id": "E003",
        "name": "Lena Fischer",
        "email": "lena.fischer@company.com",
        "department": "Engineering",
        "joining_date": date(2023, 9, 1),
        "leave_balance": 12,
    },
]


def get_demo_employees() -> list[dict]:
    """Fresh copies of the demo records."""
    return [dict(record) for record in DEMO_EMPLOYEES]
