"""Tests for the command-line entry point."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from surebet.__main__ import load_draft, main

DRAFT = """\
- bookmakerId: bet365
  odd: "2,10"
  stake: 100
  isReference: true
- bookmakerId: pinnacle
  odd: 2.05
"""


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """main() reconfigures the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def draft_file(tmp_path: Path) -> Path:
    path = tmp_path / "draft.yaml"
    path.write_text(DRAFT)
    return path


class TestMarketCommand:
    def test_arbitrage_market(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["market", "--odds", "2.10", "2.05", "--stake", "100"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Arbitrage:      yes" in out
        assert "[success]" in out

    def test_freebet(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["market", "--odds", "2.5", "3.4", "3.1", "--freebet", "50", "--freebet-kind", "sr"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Freebet SR 50.00 on outcome 2" in out

    def test_single_odd_rejected(self) -> None:
        assert main(["market", "--odds", "2.0"]) == 2

    def test_unparsable_odd(self) -> None:
        with pytest.raises(SystemExit):
            main(["market", "--odds", "abc", "2"])

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_non_positive_freebet_rejected(self, value: str) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["market", "--odds", "2.5", "3.4", "--freebet", value])
        assert exc.value.code == 2


class TestTicketCommand:
    def test_solves_draft(self, draft_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["ticket", str(draft_file)])
        out = capsys.readouterr().out
        assert code == 0
        assert "102.44" in out
        assert "Guaranteed:     7.56" in out
        assert "equalized (solved)" in out

    def test_rounded_draft(self, draft_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["ticket", str(draft_file), "--round", "5"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Total stake:    200.00" in out
        assert "Guaranteed:     5.00" in out

    def test_target_total(self, draft_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["ticket", str(draft_file), "--target", "400"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Total stake:    400.00" in out

    def test_zero_rounding_increment_rejected(self, draft_file: Path) -> None:
        with pytest.raises(SystemExit) as exc:
            main(["ticket", str(draft_file), "--round", "0"])
        assert exc.value.code == 2

    def test_bad_draft(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("legs: 3\n")
        assert main(["ticket", str(path)]) == 2

    def test_missing_file(self, tmp_path: Path) -> None:
        assert main(["ticket", str(tmp_path / "nope.yaml")]) == 2


class TestLoadDraft:
    def test_mapping_with_rates(self, tmp_path: Path) -> None:
        path = tmp_path / "multi.yaml"
        path.write_text(
            "base: BRL\n"
            "rates:\n  USD: '5.0'\n"
            "legs:\n"
            "  - {bookmakerId: a, currency: USD, odd: 2.5, stake: 20}\n"
            "  - {bookmakerId: b, odd: 2.0, stake: 100}\n"
        )
        legs, rates = load_draft(path)
        assert len(legs) == 2
        assert rates is not None
        assert rates.has("USD")

    def test_plain_list(self, draft_file: Path) -> None:
        legs, rates = load_draft(draft_file)
        assert rates is None
        assert legs[0]["bookmakerId"] == "bet365"
