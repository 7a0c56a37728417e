"""Tests for the payroll CLI."""

import json
from uuid import uuid4

import pytest

from pl_payroll.cli import PayrollCli


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


@pytest.fixture
def employees_file(tmp_path, tenant_id):
    path = tmp_path / "employees.json"
    path.write_text(
        json.dumps(
            [
                {
                    "employee_id": str(uuid4()),
                    "tenant_id": str(tenant_id),
                    "gross_base_salary": "15000",
                    "contract_start": "2020-01-01",
                    "inputs": {"working_days": 21},
                },
                {
                    "employee_id": str(uuid4()),
                    "tenant_id": str(tenant_id),
                    "gross_base_salary": "15000",
                    "contract_start": None,
                },
            ]
        )
    )
    return path


class TestPayrollCli:
    """Test CLI commands end to end."""

    def test_no_command_prints_help(self, capsys):
        assert PayrollCli().run([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_working_days(self, capsys):
        assert PayrollCli().run(["working-days", "--year", "2024"]) == 0

        out = capsys.readouterr().out
        assert "2024-01:  21" in out
        assert "2024-05:  20" in out

    def test_invalid_month_rejected(self):
        with pytest.raises(SystemExit):
            PayrollCli().run(["rates", "--year", "2024", "--month", "13"])

    def test_rates_require_year_and_month(self, database_url, capsys):
        assert PayrollCli().run(["--database-url", database_url, "rates", "--year", "2024"]) == 1
        assert "go together" in capsys.readouterr().err

    def test_seed_then_resolve(self, database_url, capsys):
        cli = PayrollCli()

        assert cli.run(["--database-url", database_url, "seed-rates"]) == 0
        assert "Seeded 2" in capsys.readouterr().out

        assert cli.run(["--database-url", database_url, "seed-rates"]) == 0
        assert "Seeded 0" in capsys.readouterr().out

        assert cli.run(["--database-url", database_url, "rates", "--year", "2024", "--month", "5"]) == 0
        tables = json.loads(capsys.readouterr().out)
        assert tables[0]["effective_from"] == "2024-01-01"

    def test_calculate_without_rates_fails(self, database_url, employees_file, tenant_id, capsys):
        code = PayrollCli().run(
            [
                "--database-url", database_url,
                "calculate",
                "--tenant-id", str(tenant_id),
                "--year", "2024",
                "--month", "1",
                "--employees", str(employees_file),
            ]
        )

        assert code == 1
        assert "No rate table" in capsys.readouterr().err

    def test_calculate(self, database_url, employees_file, tenant_id, tmp_path, capsys):
        cli = PayrollCli()
        cli.run(["--database-url", database_url, "seed-rates"])
        capsys.readouterr()
        output = tmp_path / "records.json"

        code = cli.run(
            [
                "--database-url", database_url,
                "calculate",
                "--tenant-id", str(tenant_id),
                "--year", "2024",
                "--month", "1",
                "--employees", str(employees_file),
                "--output", str(output),
            ]
        )

        # One employee has no contract
        assert code == 2
        records = json.loads(output.read_text())
        assert len(records) == 2
        calculated = [r for r in records if r["status"] == "CALCULATED"]
        assert calculated[0]["net_salary"] == "11558.58"

    def test_unreadable_employees_file(self, database_url, tenant_id, tmp_path, capsys):
        code = PayrollCli().run(
            [
                "--database-url", database_url,
                "calculate",
                "--tenant-id", str(tenant_id),
                "--year", "2024",
                "--month", "1",
                "--employees", str(tmp_path / "missing.json"),
            ]
        )

        assert code == 1
        assert "cannot read employees file" in capsys.readouterr().err
