"""Unit tests for the backfill command line entry point."""

import json
import uuid
from unittest.mock import AsyncMock, patch

from app import cli
from app.schemas.backfill import BackfillItem, BackfillResponse, BackfillStatus


def make_report(*statuses: BackfillStatus, dry_run: bool = False) -> BackfillResponse:
    items = [BackfillItem(session_id=uuid.uuid4(), status=status) for status in statuses]
    return BackfillResponse(
        dry_run=dry_run,
        limit=50,
        scanned=len(items),
        updated=sum(1 for item in items if item.status == BackfillStatus.UPDATED),
        results=items,
    )


class TestBackfillCli:
    def test_parser_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.limit is None
        assert args.dry_run is False

    def test_success(self, capsys):
        report = make_report(BackfillStatus.UPDATED, BackfillStatus.UNCHANGED)
        with patch.object(cli, "run_backfill", AsyncMock(return_value=report)) as run:
            exit_code = cli.main(["--limit", "10", "--dry-run"])

        assert exit_code == 0
        run.assert_awaited_once_with(10, True)
        assert "scanned=2 updated=1" in capsys.readouterr().out

    def test_failures_set_exit_code(self):
        report = make_report(BackfillStatus.UPDATED, BackfillStatus.GEMINI_ERROR)
        with patch.object(cli, "run_backfill", AsyncMock(return_value=report)):
            assert cli.main([]) == 1

    def test_json_output(self, capsys):
        report = make_report(BackfillStatus.DRY_RUN_UPDATE, dry_run=True)
        with patch.object(cli, "run_backfill", AsyncMock(return_value=report)):
            cli.main(["--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["dryRun"] is True
        assert data["results"][0]["status"] == "dry_run_update"
