"""
Unit tests for the command-line interface.

:return : Test suite.
:return: Unit tests for argument handling and the conversion commands.
"""

import json
import sys

import pytest

from pn_bpmn.cli.main import main
from pn_bpmn.integration.pm4py_adapter import export_pnml, import_pnml
from pn_bpmn.models.petri import PetriNet


def _write_net(filepath: str) -> None:
    net = PetriNet("cli")
    p0 = net.add_place("p0", tokens=1)
    a = net.add_transition("a")
    p1 = net.add_place("p1", final=1)
    net.add_arc(p0, a)
    net.add_arc(a, p1)
    export_pnml(net, filepath)


def test_no_command_exits(monkeypatch) -> None:
    """
    Test that running without a command prints help and exits with 1.

    :return : None.
    :return: Test assertion.
    """
    monkeypatch.setattr(sys, "argv", ["pn-bpmn"])

    with pytest.raises(SystemExit) as excinfo:
        main()

    assert excinfo.value.code == 1


def test_pn2bpmn_writes_json(monkeypatch, tmp_path, capsys) -> None:
    """
    Test the net to diagram command with JSON output.

    :return : None.
    :return: Test assertion.
    """
    pnml = str(tmp_path / "net.pnml")
    out = tmp_path / "out" / "diagram.json"
    _write_net(pnml)
    monkeypatch.setattr(sys, "argv", ["pn-bpmn", "pn2bpmn", "--pnml", pnml, "--out-json", str(out)])

    main()

    captured = capsys.readouterr()
    assert "Diagram with 1 activities" in captured.out
    with open(out) as f:
        data = json.load(f)
    assert len(data["conversion_map"]) == 1


def test_bpmn2pn_requires_existing_file(monkeypatch, tmp_path, capsys) -> None:
    """
    Test that a missing input file ends with an error exit.

    :return : None.
    :return: Test assertion.
    """
    missing = str(tmp_path / "missing.bpmn")
    monkeypatch.setattr(sys, "argv", ["pn-bpmn", "bpmn2pn", "--bpmn", missing])

    with pytest.raises(SystemExit) as excinfo:
        main()

    assert excinfo.value.code == 1
    assert "Error:" in capsys.readouterr().err


def test_info_on_net(monkeypatch, tmp_path, capsys) -> None:
    """
    Test net statistics output.

    :return : None.
    :return: Test assertion.
    """
    pnml = str(tmp_path / "net.pnml")
    _write_net(pnml)
    monkeypatch.setattr(sys, "argv", ["pn-bpmn", "info", "--pnml", pnml])

    main()

    captured = capsys.readouterr()
    assert "Places: 2" in captured.out
    assert "Transitions: 1" in captured.out
    assert len(import_pnml(pnml).marked_places()) == 1
