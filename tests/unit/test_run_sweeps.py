"""Unit tests for the command-line sweep runner"""
from unittest.mock import patch

from orgtasks import run_sweeps


class TestArguments:

    def test_defaults(self):
        args = run_sweeps.parse_args([])
        assert not args.expiry and not args.reminders and not args.dry_run

    def test_flags(self):
        args = run_sweeps.parse_args(["--reminders", "--dry-run"])
        assert args.reminders and args.dry_run and not args.expiry


class TestMain:

    def test_runs_both_sweeps_by_default(self, fake_db):
        with patch("orgtasks.run_sweeps.init_firebase", return_value=True), \
                patch("orgtasks.run_sweeps.run", return_value={}) as run:
            assert run_sweeps.main([]) == 0
        run.assert_called_once_with(fake_db, expiry=True, reminders=True, dry_run=False)

    def test_single_sweep(self, fake_db):
        with patch("orgtasks.run_sweeps.init_firebase", return_value=True), \
                patch("orgtasks.run_sweeps.run", return_value={}) as run:
            run_sweeps.main(["--expiry", "--dry-run"])
        run.assert_called_once_with(fake_db, expiry=True, reminders=False, dry_run=True)

    def test_unconfigured_firebase(self):
        with patch("orgtasks.run_sweeps.init_firebase", return_value=False), \
                patch("orgtasks.run_sweeps.run") as run:
            assert run_sweeps.main([]) == 1
        run.assert_not_called()

    def test_run_returns_counts(self, fake_db):
        assert run_sweeps.run(fake_db, expiry=True, reminders=True) == {"expired": 0, "reminded": 0}
