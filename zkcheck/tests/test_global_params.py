import sys

import pytest

from zkcheck.global_params import EXAMPLES_PATH, global_config
from zkcheck.global_params.paths import GlobalConfig


def test_singleton():
    assert GlobalConfig() is global_config


def test_examples_are_bundled():
    assert (EXAMPLES_PATH / "bit_decomposition.json").exists()


def test_unknown_solver():
    with pytest.raises(ValueError):
        global_config.is_solver_available("yices")


def test_set_solver_path_rejects_missing_file(tmp_path):
    with pytest.raises(ValueError):
        global_config.set_solver_path("cvc5", str(tmp_path / "nope"))


def test_solver_command_carries_timeout(monkeypatch):
    cvc5 = global_config.solver("cvc5")
    monkeypatch.setattr(cvc5, "exec_path", sys.executable)
    cmd = global_config.get_solver_command("cvc5", timeout_ms=250)
    assert cmd[0] == sys.executable
    assert "--lang=smt2" in cmd
    assert cmd[-1] == "--tlimit-per=250"
    assert "--tlimit-per=250" not in global_config.get_solver_command("cvc5")


def test_missing_solver_has_no_command(monkeypatch):
    monkeypatch.setattr(global_config.solver("cvc5"), "exec_path", None)
    assert global_config.get_solver_command("cvc5") is None
    assert not global_config.is_solver_available("cvc5")
