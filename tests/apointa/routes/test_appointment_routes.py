from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from apointa.models.appointment import Appointment
from apointa.routes.appointment_routes import (
    AppointmentResponse,
    CreateAppointmentRequest,
    UpdateAppointmentStatusRequest,
    create_appointment,
    list_doctor_appointments,
    list_patient_appointments,
    update_appointment_status,
)


def _create(db, doctor, patient, start: str, end: str | None = None) -> Appointment:
    return create_appointment(
        CreateAppointmentRequest(
            doctor_id=doctor.id,
            patient_id=patient.id,
            start_datetime=start,
            end_datetime=end,
        ),
        db=db,
    )


def test_update_status_request_strips_but_keeps_case() -> None:
    assert UpdateAppointmentStatusRequest(status=' confirmed ').status == 'confirmed'
    assert UpdateAppointmentStatusRequest(status=' Confirmed ').status == 'Confirmed'


def test_appointment_response_reports_utc() -> None:
    response = AppointmentResponse(
        id=1,
        doctor_id=1,
        patient_id=2,
        start_datetime=datetime(2026, 1, 5, 9, 0),
        end_datetime=datetime(2026, 1, 5, 9, 30),
        status='pending',
    )

    assert response.start_datetime == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    assert response.model_dump(mode='json')['end_datetime'] == '2026-01-05T09:30:00Z'


def test_create_appointment_returns_pending_booking(db, doctor, patient) -> None:
    appointment = _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    assert appointment.status == 'pending'
    assert appointment.end_datetime == datetime(2026, 1, 5, 9, 30)


def test_create_appointment_uses_configured_default_duration(db, doctor, patient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('apointa.core.config.DEFAULT_APPOINTMENT_MINUTES', 20)

    appointment = _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    assert appointment.end_datetime == datetime(2026, 1, 5, 9, 20)


def test_create_appointment_honours_availability_flag(db, doctor, patient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('apointa.core.config.ENFORCE_AVAILABILITY', True)

    with pytest.raises(HTTPException) as exception_info:
        _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == {
        'kind': 'conflict',
        'message': 'Doctor has no availability on the requested day.',
    }


@pytest.mark.parametrize(
    ('start', 'end'),
    [
        ('2026-01-05T09:00:00Z', '2026-01-05T09:00:00Z'),
        ('2026-01-05T09:00:00Z', '2026-01-05T08:00:00Z'),
        ('tomorrow morning', None),
    ],
)
def test_create_appointment_rejects_bad_windows(db, doctor, patient, start, end) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _create(db, doctor, patient, start, end)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['kind'] == 'invalid_request'


def test_create_appointment_for_unknown_doctor_returns_404(db, patient) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            CreateAppointmentRequest(doctor_id=999, patient_id=patient.id, start_datetime='2026-01-05T09:00:00Z'),
            db=db,
        )

    assert exception_info.value.status_code == 404
    assert db.query(Appointment).count() == 0


def test_create_appointment_conflict_returns_409(db, doctor, patient) -> None:
    _create(db, doctor, patient, '2026-01-05T09:00:00Z', '2026-01-05T09:30:00Z')

    with pytest.raises(HTTPException) as exception_info:
        _create(db, doctor, patient, '2026-01-05T09:15:00Z', '2026-01-05T09:45:00Z')

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == {'kind': 'conflict', 'message': 'Selected time slot is already booked'}


def test_list_patient_appointments_includes_doctor_details(db, doctor, patient) -> None:
    _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    appointments = list_patient_appointments(patient_id=patient.id, db=db)

    assert len(appointments) == 1
    assert appointments[0].doctor_id == doctor.id
    assert appointments[0].doctor_name == 'Dr. Ada Grey'
    assert appointments[0].specialty == 'Cardiology'


def test_list_doctor_appointments_round_trips_booking(db, doctor, patient) -> None:
    created = _create(db, doctor, patient, '2026-01-05T09:00:00Z', '2026-01-05T09:45:00Z')

    appointments = list_doctor_appointments(user_id=doctor.user_id, db=db)

    assert len(appointments) == 1
    assert appointments[0].id == created.id
    assert appointments[0].start_datetime == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    assert appointments[0].end_datetime == datetime(2026, 1, 5, 9, 45, tzinfo=timezone.utc)
    assert appointments[0].status == 'pending'
    assert appointments[0].patient_name == 'Sam Patel'


def test_list_doctor_appointments_requires_doctor_user(db, patient) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_doctor_appointments(user_id=patient.id, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == {'kind': 'not_found', 'message': 'Doctor not found for this user'}


def test_list_patient_appointments_reports_database_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def raise_operational_error(self, _patient_id):
        raise OperationalError('SELECT ...', {}, Exception('connection refused'))

    monkeypatch.setattr(
        'apointa.scheduling.store.SchedulingStore.list_appointments_for_patient',
        raise_operational_error,
    )

    with pytest.raises(HTTPException) as exception_info:
        list_patient_appointments(patient_id=1, db=None)

    assert exception_info.value.status_code == 503
    assert exception_info.value.detail['kind'] == 'internal'


def test_update_status_cancels_and_frees_slot(db, doctor, patient) -> None:
    created = _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    updated = update_appointment_status(
        appointment_id=created.id,
        data=UpdateAppointmentStatusRequest(status='canceled'),
        db=db,
    )
    rebooked = _create(db, doctor, patient, '2026-01-05T09:00:00Z')

    assert updated.status == 'canceled'
    assert rebooked.status == 'pending'


@pytest.mark.parametrize(
    ('appointment_id', 'new_status', 'status_code'),
    [
        (999, 'confirmed', 404),
        (999, 'archived', 400),
        (999, None, 400),
        (999, 'CANCELED', 400),
        (999, 'Confirmed', 400),
    ],
)
def test_update_status_errors(db, appointment_id, new_status, status_code) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            appointment_id=appointment_id,
            data=UpdateAppointmentStatusRequest(status=new_status),
            db=db,
        )

    assert exception_info.value.status_code == status_code
