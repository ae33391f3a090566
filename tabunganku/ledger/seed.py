"""
Demo data used when no saved ledger exists yet.

Balances agree with the seeded transactions, so a fresh ledger
satisfies the balance invariant from the first moment.
"""

from tabunganku.models.ledger import LedgerSnapshot, Student, Transaction


def demo_snapshot() -> LedgerSnapshot:
    students = (
        Student(id="1", name="Ahmad Rizky", class_name="10 IPA 1",
                balance=500000, join_date="2023-01-15"),
        Student(id="2", name="Siti Aminah", class_name="11 IPS 2",
                balance=1250000, join_date="2023-02-20"),
        Student(id="3", name="Budi Darmawan", class_name="12 IPA 3",
                balance=750000, join_date="2023-03-10"),
    )
    # Most recent first, the canonical in-memory order
    transactions = (
        Transaction(id="105", student_id="3", student_name="Budi Darmawan",
                    type="WITHDRAWAL", amount=50000,
                    date="2023-10-10T13:00:00.000Z", note="Beli Buku"),
        Transaction(id="104", student_id="3", student_name="Budi Darmawan",
                    type="DEPOSIT", amount=800000,
                    date="2023-10-06T11:00:00.000Z", note="Uang Kas"),
        Transaction(id="103", student_id="2", student_name="Siti Aminah",
                    type="DEPOSIT", amount=250000,
                    date="2023-10-05T10:00:00.000Z", note="Tambahan"),
        Transaction(id="102", student_id="2", student_name="Siti Aminah",
                    type="DEPOSIT", amount=1000000,
                    date="2023-10-02T09:30:00.000Z", note="Tabungan"),
        Transaction(id="101", student_id="1", student_name="Ahmad Rizky",
                    type="DEPOSIT", amount=500000,
                    date="2023-10-01T08:00:00.000Z", note="Setoran Awal"),
    )
    return LedgerSnapshot(students=students, transactions=transactions)
