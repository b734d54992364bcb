from datetime import date
from decimal import Decimal

import pytest

from app.models.billing import Bill, InvoiceSequence
from app.models.patient import PatientTest
from app.core.config import settings
from app.services import billing_service
from app.services.billing_numbers import format_invoice_number, next_invoice_number
from app.services.errors import ConflictError, NotFoundError, ValidationError
from app.utils.timezone import now_local, today_local


def test_invoice_number_format():
    assert format_invoice_number(date(2024, 3, 5), 7) == "INV-20240305-0007"
    assert format_invoice_number(date(2024, 12, 31), 9999) == "INV-20241231-9999"


def test_compute_totals_quantizes_and_checks_discount():
    total, disc, final = billing_service.compute_totals(
        ["500", Decimal("800.005")], "100")
    assert total == Decimal("1300.01")
    assert disc == Decimal("100.00")
    assert final == Decimal("1200.01")

    with pytest.raises(ValidationError):
        billing_service.compute_totals(["10"], "-1")
    with pytest.raises(ValidationError):
        billing_service.compute_totals(["10"], "10.01")


def test_create_bill_sums_prices_and_marks_tests_billed(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id, catalog["lipid"].id])

    bill = billing_service.create_bill(db, patient_id=patient.id, discount=100)

    assert bill.total_amount == Decimal("1300.00")
    assert bill.discount == Decimal("100.00")
    assert bill.final_amount == Decimal("1200.00")
    assert bill.is_paid is False
    assert bill.invoice_number == format_invoice_number(today_local(), 1)

    statuses = {
        pt.status
        for pt in db.query(PatientTest).filter(
            PatientTest.patient_id == patient.id)
    }
    assert statuses == {"billed"}


def test_create_bill_restamps_completed_tests(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])
    pt = db.query(PatientTest).filter(PatientTest.patient_id == patient.id).one()
    pt.status = "completed"
    db.commit()

    billing_service.create_bill(db, patient_id=patient.id)

    db.refresh(pt)
    assert pt.status == "billed"


def test_second_bill_for_patient_conflicts(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])
    billing_service.create_bill(db, patient_id=patient.id)

    with pytest.raises(ConflictError) as exc:
        billing_service.create_bill(db, patient_id=patient.id)
    assert exc.value.msg == "Bill already exists for this patient"
    assert db.query(Bill).count() == 1


def test_discount_above_total_creates_nothing(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])

    with pytest.raises(ValidationError):
        billing_service.create_bill(db, patient_id=patient.id, discount=600)

    assert db.query(Bill).count() == 0
    pt = db.query(PatientTest).filter(PatientTest.patient_id == patient.id).one()
    assert pt.status == "pending"


def test_unknown_patient_is_not_found(db):
    with pytest.raises(NotFoundError):
        billing_service.create_bill(db, patient_id=999)


def test_invoice_sequence_increments_per_day(db, catalog, make_patient):
    first = make_patient([catalog["cbc"].id])
    second = make_patient([catalog["lipid"].id], fullName="John Roe")

    a = billing_service.create_bill(db, patient_id=first.id)
    b = billing_service.create_bill(db, patient_id=second.id)

    today = today_local()
    assert a.invoice_number == format_invoice_number(today, 1)
    assert b.invoice_number == format_invoice_number(today, 2)


def test_invoice_counter_skips_numbers_already_used(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])
    today = today_local()
    db.add(
        Bill(invoice_number=format_invoice_number(today, 1),
             patient_id=patient.id,
             total_amount=Decimal("500.00"),
             discount=Decimal("0"),
             final_amount=Decimal("500.00"),
             created_at=now_local()))
    db.add(InvoiceSequence(date_key=int(today.strftime("%Y%m%d")), next_seq=1))
    db.commit()

    assert next_invoice_number(db, on_date=today) == format_invoice_number(today, 2)
    db.rollback()


def test_new_day_counter_starts_after_existing_bills(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])
    today = today_local()
    db.add(
        Bill(invoice_number="INV-LEGACY-1",
             patient_id=patient.id,
             total_amount=Decimal("500.00"),
             discount=Decimal("0"),
             final_amount=Decimal("500.00"),
             created_at=now_local()))
    db.commit()

    assert next_invoice_number(db, on_date=today) == format_invoice_number(today, 2)
    db.rollback()


def test_update_payment_flips_flag_only(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id])
    bill = billing_service.create_bill(db, patient_id=patient.id)

    paid = billing_service.update_bill_payment(db, bill_id=bill.id, is_paid=True)
    assert paid.is_paid is True
    pt = db.query(PatientTest).filter(PatientTest.patient_id == patient.id).one()
    assert pt.status == "billed"

    unpaid = billing_service.update_bill_payment(db, bill_id=bill.id, is_paid=False)
    assert unpaid.is_paid is False

    with pytest.raises(NotFoundError):
        billing_service.update_bill_payment(db, bill_id=bill.id + 100, is_paid=True)


def test_search_bills_matches_name_and_invoice(db, catalog, make_patient):
    jane = make_patient([catalog["cbc"].id])
    john = make_patient([catalog["lipid"].id], fullName="John Roe")
    jane_bill = billing_service.create_bill(db, patient_id=jane.id)
    billing_service.create_bill(db, patient_id=john.id)

    rows = billing_service.search_bills(db, "jane")
    assert [r["id"] for r in rows] == [jane_bill.id]
    assert rows[0]["patient_name"] == "Jane Doe"
    assert rows[0]["patient_code"] == jane.patient_id

    assert len(billing_service.search_bills(db, "INV-")) == 2

    with pytest.raises(ValidationError):
        billing_service.search_bills(db, "  ")


def test_bill_view_lists_every_assigned_test(db, catalog, make_patient):
    patient = make_patient([catalog["cbc"].id, catalog["lipid"].id])

    view = billing_service.get_bill_view(db, patient.id)
    assert view["bill"] is None
    assert [(l["test_name"], l["test_price"]) for l in view["lines"]] == [
        ("CBC", Decimal("500.00")),
        ("Lipid Profile", Decimal("800.00")),
    ]


def test_patients_with_bills(db, catalog, make_patient):
    billed = make_patient([catalog["cbc"].id, catalog["lipid"].id])
    make_patient([catalog["cbc"].id], fullName="No Bill")
    billing_service.create_bill(db, patient_id=billed.id)

    rows = {r["full_name"]: r for r in billing_service.list_patients_with_bills(db)}
    assert rows["Jane Doe"]["test_count"] == 2
    assert rows["Jane Doe"]["bill"] is not None
    assert rows["No Bill"]["bill"] is None


def test_invoice_sequence_is_capped_at_four_digits(db):
    with pytest.raises(ConflictError):
        format_invoice_number(date(2024, 12, 31), 10000)

    today = today_local()
    db.add(InvoiceSequence(date_key=int(today.strftime("%Y%m%d")), next_seq=10000))
    db.commit()
    with pytest.raises(ConflictError):
        next_invoice_number(db, on_date=today)
    db.rollback()


def test_concurrent_bill_for_same_patient_maps_unique_violation(db, catalog,
                                                                make_patient,
                                                                monkeypatch):
    patient = make_patient([catalog["cbc"].id])
    billing_service.create_bill(db, patient_id=patient.id)

    real_lookup = billing_service._bill_for_patient
    calls = []

    def lookup_misses_first(session, patient_id):
        calls.append(patient_id)
        if len(calls) == 1:
            # the other request has not committed yet
            return None
        return real_lookup(session, patient_id)

    monkeypatch.setattr(billing_service, "_bill_for_patient", lookup_misses_first)

    with pytest.raises(ConflictError) as exc:
        billing_service.create_bill(db, patient_id=patient.id)
    assert exc.value.msg == "Bill already exists for this patient"
    assert len(calls) == 2
    assert db.query(Bill).count() == 1


def test_invoice_collision_is_retried(db, catalog, make_patient, monkeypatch):
    first = make_patient([catalog["cbc"].id])
    second = make_patient([catalog["lipid"].id], fullName="John Roe")
    taken = billing_service.create_bill(db, patient_id=first.id).invoice_number

    real_next = billing_service.next_invoice_number
    calls = []

    def collide_once(session, on_date=None):
        calls.append(on_date)
        if len(calls) == 1:
            return taken
        return real_next(session, on_date=on_date)

    monkeypatch.setattr(billing_service, "next_invoice_number", collide_once)

    bill = billing_service.create_bill(db, patient_id=second.id)

    assert len(calls) == 2
    assert bill.invoice_number == format_invoice_number(today_local(), 2)
    assert db.query(Bill).count() == 2


def test_invoice_collision_gives_up_after_retries(db, catalog, make_patient,
                                                  monkeypatch):
    first = make_patient([catalog["cbc"].id])
    second = make_patient([catalog["lipid"].id], fullName="John Roe")
    taken = billing_service.create_bill(db, patient_id=first.id).invoice_number

    calls = []

    def always_taken(session, on_date=None):
        calls.append(on_date)
        return taken

    monkeypatch.setattr(billing_service, "next_invoice_number", always_taken)
    monkeypatch.setattr(settings, "INVOICE_MAX_RETRIES", 2)

    with pytest.raises(ConflictError) as exc:
        billing_service.create_bill(db, patient_id=second.id)
    assert exc.value.msg == "Could not allocate a unique invoice number, please retry"
    assert len(calls) == 2
    assert db.query(Bill).count() == 1
    pt = db.query(PatientTest).filter(PatientTest.patient_id == second.id).one()
    assert pt.status == "pending"
