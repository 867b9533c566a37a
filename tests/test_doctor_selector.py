"""
Tests for the doctor selector.
"""

from datetime import time

import pendulum

from clinicslots.domain.doctor_selector import DoctorSelector
from clinicslots.domain.models import AppointmentStatus, Service, UnavailabilityPeriod
from clinicslots.domain.slot_generator import SlotGenerator

MONDAY = pendulum.date(2024, 6, 3)
FULL_DAY = {0: [("08:00", "16:00")]}


def _selector(clinic, bookings=()):
    return DoctorSelector(SlotGenerator(clinic, list(bookings)))


class TestDoctorSelector:
    """Tests for DoctorSelector."""

    def test_least_loaded_doctor_wins(self, make_clinic, make_doctor, make_appointment):
        """A has three bookings, B has one: B gets the appointment."""
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [
            make_appointment(1, "08:00", "08:30"),
            make_appointment(1, "08:30", "09:00"),
            make_appointment(1, "09:00", "09:30"),
            make_appointment(2, "08:00", "08:30"),
        ]

        match = _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(11, 0))

        assert match is not None
        assert match.doctor_id == 2
        assert match.load_score == 1
        assert match.duration_minutes == 30

    def test_cancelled_appointments_do_not_count_as_load(self, make_clinic, make_doctor, make_appointment):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [
            make_appointment(1, "08:00", "08:30", status=AppointmentStatus.CANCELLED),
            make_appointment(1, "08:30", "09:00", status=AppointmentStatus.NO_SHOW),
            make_appointment(2, "08:00", "08:30"),
        ]

        match = _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(11, 0))

        assert match.doctor_id == 1
        assert match.load_score == 0

    def test_tie_is_broken_by_lowest_id(self, make_clinic, make_doctor):
        doctors = [make_doctor(7, hours=FULL_DAY), make_doctor(3, hours=FULL_DAY)]

        match = _selector(make_clinic(doctors)).find_best_doctor(MONDAY, time(9, 0))

        assert match.doctor_id == 3

    def test_specialty_match_beats_lower_load(self, make_clinic, make_doctor, make_appointment):
        doctors = [
            make_doctor(1, hours=FULL_DAY, specialties=("Allgemeinmedizin",)),
            make_doctor(2, hours=FULL_DAY, specialties=("Kardiologie",)),
        ]
        bookings = [make_appointment(2, "08:00", "08:30"), make_appointment(2, "08:30", "09:00")]
        service = Service(id=10, name="EKG", duration_minutes=20, category="kardiologie")

        match = _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(10, 0), service)

        assert match.doctor_id == 2
        assert match.specialty == "Kardiologie"
        assert match.duration_minutes == 20

    def test_doctor_booked_at_requested_time_is_skipped(self, make_clinic, make_doctor, make_appointment):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [make_appointment(1, "09:45", "10:15")]

        match = _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(10, 0))

        assert match.doctor_id == 2

    def test_everyone_booked_returns_none(self, make_clinic, make_doctor, make_appointment):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [make_appointment(1, "10:00", "10:30"), make_appointment(2, "10:00", "11:00")]

        assert _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(10, 0)) is None

    def test_requested_interval_must_fit_working_hours(self, make_clinic, make_doctor):
        doctors = [make_doctor(1, hours={0: [("09:00", "11:00")]})]
        selector = _selector(make_clinic(doctors))

        assert selector.find_best_doctor(MONDAY, time(10, 30)) is not None
        assert selector.find_best_doctor(MONDAY, time(10, 45)) is None
        assert selector.find_best_doctor(MONDAY, time(8, 30)) is None
        assert selector.find_best_doctor(MONDAY.add(days=1), time(9, 0)) is None

    def test_service_qualification_is_enforced(self, make_clinic, make_doctor):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        service = Service(id=10, name="Ultraschall", qualified_doctor_ids=frozenset({2}))

        match = _selector(make_clinic(doctors)).find_best_doctor(MONDAY, time(9, 0), service)

        assert match.doctor_id == 2

    def test_inactive_and_absent_doctors_are_not_eligible(self, make_clinic, make_doctor):
        doctors = [
            make_doctor(1, hours=FULL_DAY, active=False),
            make_doctor(2, hours=FULL_DAY, unavailability=[UnavailabilityPeriod(MONDAY, MONDAY)]),
            make_doctor(3, hours=FULL_DAY),
        ]

        match = _selector(make_clinic(doctors)).find_best_doctor(MONDAY, time(9, 0))

        assert match.doctor_id == 3

    def test_doctor_at_daily_limit_is_not_eligible(self, make_clinic, make_doctor, make_appointment):
        doctors = [
            make_doctor(1, hours=FULL_DAY, max_daily_appointments=1),
            make_doctor(2, hours=FULL_DAY),
        ]
        bookings = [
            make_appointment(1, "08:00", "08:30"),
            make_appointment(2, "08:00", "08:30"),
            make_appointment(2, "08:30", "09:00"),
        ]

        match = _selector(make_clinic(doctors), bookings).find_best_doctor(MONDAY, time(12, 0))

        assert match.doctor_id == 2

    def test_doctor_without_duration_is_skipped(self, make_clinic, make_doctor):
        doctors = [make_doctor(1, hours=FULL_DAY, duration=None), make_doctor(2, hours=FULL_DAY)]

        match = _selector(make_clinic(doctors)).find_best_doctor(MONDAY, time(9, 0))

        assert match.doctor_id == 2

    def test_no_doctors_returns_none(self, make_clinic):
        assert _selector(make_clinic([])).find_best_doctor(MONDAY, time(9, 0)) is None

    def test_excluded_doctor_is_skipped(self, make_clinic, make_doctor, make_appointment):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [make_appointment(1, "08:00", "08:30")]
        selector = _selector(make_clinic(doctors), bookings)

        assert selector.find_best_doctor(MONDAY, time(9, 0)).doctor_id == 2
        assert selector.find_best_doctor(MONDAY, time(9, 0), exclude_doctor_id=2).doctor_id == 1

    def test_excluding_the_only_free_doctor_returns_none(self, make_clinic, make_doctor, make_appointment):
        doctors = [make_doctor(1, hours=FULL_DAY), make_doctor(2, hours=FULL_DAY)]
        bookings = [make_appointment(1, "09:00", "09:30")]
        selector = _selector(make_clinic(doctors), bookings)

        assert selector.find_best_doctor(MONDAY, time(9, 0), exclude_doctor_id=2) is None
        assert [c.doctor.id for c in selector.find_candidates(MONDAY, time(9, 0))] == [2]
