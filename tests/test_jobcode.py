from datetime import date

import pytest

from app.services.projects.jobcode_service import (
    format_job_code,
    parse_job_code,
    generate_job_code,
    JOB_CODE_PATTERN,
)


def test_format_job_code():
    assert format_job_code(date(2025, 1, 15), 1) == "WK2K25-0001-0115"
    assert format_job_code(date(2025, 12, 3), 42) == "WK2K25-0042-1203"


def test_sequence_widens_past_four_digits():
    code = format_job_code(date(2025, 6, 1), 12345)
    assert code == "WK2K25-12345-0601"
    assert parse_job_code(code) == ("25", 12345, "0601")


def test_parse_rejects_garbage():
    with pytest.raises(ValueError):
        parse_job_code("JOB-2025-1")


async def test_codes_increase_within_a_year(db):
    codes = []
    for day in (date(2025, 3, 1), date(2025, 3, 1), date(2025, 9, 30)):
        codes.append(await generate_job_code(db, day))
    await db.commit()

    assert codes == ["WK2K25-0001-0301", "WK2K25-0002-0301", "WK2K25-0003-0930"]
    sequences = [parse_job_code(c)[1] for c in codes]
    assert sequences == sorted(sequences)


async def test_new_year_restarts_sequence(db):
    await generate_job_code(db, date(2025, 12, 31))
    first_2026 = await generate_job_code(db, date(2026, 1, 1))
    await db.commit()

    assert first_2026 == "WK2K26-0001-0101"


async def test_projects_receive_job_codes(erp):
    customer = await erp.company()
    first = await erp.project(customer["id"], name="Press line")
    second = await erp.project(customer["id"], name="Paint booth")

    assert JOB_CODE_PATTERN.match(first["job_code"])
    assert parse_job_code(second["job_code"])[1] == parse_job_code(first["job_code"])[1] + 1

    resp = await erp.client.get(
        f"/api/projects/job-code/{first['job_code']}",
        headers=erp.headers("production"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == first["id"]
