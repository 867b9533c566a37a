"""
Tests for the file-backed data source and its record schemas.
"""

import json
from datetime import time

import pendulum
import pytest

from clinicslots.adapters import FileDataSource, build_data_source
from clinicslots.config import DataSourceConfig
from clinicslots.domain.exceptions import DataSourceError, UnknownEntityError
from clinicslots.domain.models import AppointmentStatus

CLINIC_YAML = """
clinics:
  - id: 1
    name: Praxis am Markt
    timezone: Europe/Berlin
    holidays:
      - {date: 2024-12-25, name: Weihnachten, is_recurring: true}
    services:
      - {id: 10, name: EKG, duration: 45, staff_ids: [2], category: Kardiologie}
    doctors:
      - id: 1
        name: Dr. Anna Weber
        specialty: Allgemeinmedizin
        appointment_duration_minutes: 30
        working_hours:
          montag: ["09:00-13:00", "14:00-18:00"]
          tuesday:
            - start: 09:00
              end: 12:30
      - id: 2
        name: Dr. Jonas Becker
        specialization: Kardiologie
        is_active: false
        working_hours:
          4: ["08:00-12:00"]
        unavailability:
          - {start_date: 2024-08-05, end_date: 2024-08-16, reason: Urlaub}
  - id: 2
    name: Zweigstelle
appointments:
  - {id: 100, clinic_id: 1, staff_id: 1, start_time: "2024-06-03T09:30:00", end_time: "2024-06-03T10:00:00", status: CONFIRMED}
  - {id: 101, clinic_id: 1, doctor_id: 1, start: "2024-06-04T07:30:00+00:00", end: "2024-06-04T08:00:00+00:00", status: no_show}
  - {id: 102, clinic_id: 2, doctor_id: 9, start: "2024-06-03T09:00:00", end: "2024-06-03T09:30:00", status: pending}
"""


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "clinic_data.yaml"
    path.write_text(CLINIC_YAML, encoding="utf-8")
    return FileDataSource(path)


class TestFileDataSource:

    def test_clinic_is_converted_to_domain(self, source):
        clinic = source.get_clinic(1)

        assert clinic.name == "Praxis am Markt"
        assert source.get_clinic(2).name == "Zweigstelle"
        assert [d.id for d in clinic.doctors] == [1, 2]

    def test_doctor_aliases_are_normalised(self, source):
        anna, jonas = source.get_clinic(1).doctors

        assert anna.specialties == ("Allgemeinmedizin",)
        assert anna.default_duration_minutes == 30
        assert jonas.specialties == ("Kardiologie",)
        assert jonas.active is False
        assert jonas.is_on_leave(pendulum.date(2024, 8, 10))

    def test_working_hours_accept_names_numbers_and_mappings(self, source):
        anna, jonas = source.get_clinic(1).doctors

        monday = anna.working_hours.intervals_for(pendulum.date(2024, 6, 3))
        tuesday = anna.working_hours.intervals_for(pendulum.date(2024, 6, 4))
        friday = jonas.working_hours.intervals_for(pendulum.date(2024, 6, 7))

        assert [(i.start_time, i.end_time) for i in monday] == [
            (time(9, 0), time(13, 0)),
            (time(14, 0), time(18, 0)),
        ]
        # unquoted 12:30 arrives from YAML as the integer 750
        assert [(i.start_time, i.end_time) for i in tuesday] == [(time(9, 0), time(12, 30))]
        assert [(i.start_time, i.end_time) for i in friday] == [(time(8, 0), time(12, 0))]

    def test_overlapping_intervals_from_document_are_merged(self, tmp_path):
        path = tmp_path / "clinic_data.yaml"
        path.write_text(
            "clinics: [{id: 1, doctors: [{id: 1, working_hours: {mon: ['09:00-10:00', '09:30-10:30']}}]}]\n",
            encoding="utf-8",
        )

        doctor = FileDataSource(path).get_clinic(1).doctors[0]
        monday = doctor.working_hours.intervals_for(pendulum.date(2024, 6, 3))

        assert [(i.start_time, i.end_time) for i in monday] == [(time(9, 0), time(10, 30))]

    def test_service_and_holiday_aliases(self, source):
        clinic = source.get_clinic(1)
        service = clinic.find_service(10)

        assert service.duration_minutes == 45
        assert service.qualified_doctor_ids == frozenset({2})
        assert service.category == "Kardiologie"
        assert clinic.is_closed_on(pendulum.date(2025, 12, 25))

    def test_appointments_are_filtered_by_clinic_and_date(self, source):
        clinic = source.get_clinic(1)

        monday = source.get_appointments(clinic, pendulum.date(2024, 6, 3), pendulum.date(2024, 6, 3))
        both = source.get_appointments(clinic, pendulum.date(2024, 6, 3), pendulum.date(2024, 6, 4))

        assert [a.id for a in monday] == [100]
        assert monday[0].doctor_id == 1
        assert monday[0].status is AppointmentStatus.CONFIRMED
        assert monday[0].time_range.start == pendulum.datetime(2024, 6, 3, 9, 30, tz="Europe/Berlin")
        assert [a.id for a in both] == [100, 101]
        assert both[1].status is AppointmentStatus.NO_SHOW
        assert both[1].time_range.start.hour == 9

    def test_unknown_clinic_raises(self, source):
        with pytest.raises(UnknownEntityError):
            source.get_clinic(42)

    def test_json_document(self, tmp_path):
        path = tmp_path / "clinic_data.json"
        path.write_text(
            json.dumps({"clinics": [{"id": 5, "doctors": [{"id": 1, "working_hours": {"mon": ["10:00-11:00"]}}]}]}),
            encoding="utf-8",
        )

        clinic = FileDataSource(path, default_timezone="Europe/Vienna").get_clinic(5)

        assert clinic.timezone == "Europe/Vienna"
        assert len(clinic.doctors[0].working_hours.intervals_for(pendulum.date(2024, 6, 3))) == 1

    def test_reload_picks_up_changes(self, tmp_path):
        path = tmp_path / "clinic_data.yaml"
        path.write_text("clinics: [{id: 1}]\n", encoding="utf-8")
        source = FileDataSource(path)

        path.write_text("clinics: [{id: 1}, {id: 2}]\n", encoding="utf-8")
        source.reload()

        assert source.get_clinic(2).id == 2

    def test_build_data_source_selects_file_adapter(self, tmp_path):
        path = tmp_path / "clinic_data.yaml"
        path.write_text("clinics: []\n", encoding="utf-8")

        source = build_data_source(DataSourceConfig(kind="file", path=path))

        assert isinstance(source, FileDataSource)


@pytest.mark.parametrize(
    "text",
    [
        "clinics: [{id: 1, doctors: [{id: 1, working_hours: {funday: ['09:00-10:00']}}]}]\n",
        "clinics: [{id: 1, doctors: [{id: 1, working_hours: {mon: ['11:00-10:00']}}]}]\n",
        "clinics: [{id: 1, doctors: [{id: 1, appointment_duration_minutes: 0}]}]\n",
        "appointments: [{id: 1, clinic_id: 1, doctor_id: 1, start: x, end: y, status: booked}]\n",
        "clinics: [{id: 1, timezone: Mars/Olympus}]\n",
        "- not a mapping\n",
        "clinics: [unclosed\n",
    ],
)
def test_malformed_documents_raise_data_source_error(tmp_path, text):
    path = tmp_path / "clinic_data.yaml"
    path.write_text(text, encoding="utf-8")

    with pytest.raises(DataSourceError):
        FileDataSource(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(DataSourceError, match="not found"):
        FileDataSource(tmp_path / "nope.yaml")
