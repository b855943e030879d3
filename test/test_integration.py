import contextlib
import io
import logging
import os
import tempfile

import pytest

import machine


@pytest.mark.golden_test("golden_tests/integration/*.yml")
def test_executing_example_program(golden, caplog) -> None:
    """Golden tests для всех программ и модели машины."""
    caplog.set_level(logging.INFO)

    with tempfile.TemporaryDirectory() as tmpdir:
        # Готовим имена файлов для входных данных.
        code_file = os.path.join(tmpdir, "code.json")
        input_file = os.path.join(tmpdir, "input.json")

        with open(code_file, "w", encoding="utf-8") as file:
            file.write(golden["in_code"])

        with open(input_file, "w", encoding="utf-8") as file:
            file.write(golden["in_input"])

        # Запускаем машину и собираем весь стандартный вывод в переменную stdout
        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(code_file, input_file)

        assert stdout.getvalue() == golden.out["out_machine_output"]
        assert caplog.text == golden.out["out_machine_log"]


def test_program_fault_is_logged(caplog) -> None:
    caplog.set_level(logging.INFO)

    with tempfile.TemporaryDirectory() as tmpdir:
        code_file = os.path.join(tmpdir, "code.json")
        input_file = os.path.join(tmpdir, "input.json")

        with open(code_file, "w", encoding="utf-8") as file:
            file.write('[{"opcode": "inbox", "arg": null}, {"opcode": "copyto", "arg": 16}]')

        with open(input_file, "w", encoding="utf-8") as file:
            file.write("[1]")

        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(code_file, input_file)

    assert stdout.getvalue() == ""
    assert "program fault at line 2" in caplog.text
    assert "AddressOutOfBoundsError" in caplog.text


def test_malformed_code_is_logged(caplog) -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        code_file = os.path.join(tmpdir, "code.json")
        input_file = os.path.join(tmpdir, "input.json")

        with open(code_file, "w", encoding="utf-8") as file:
            file.write('[{"opcode": "teleport", "arg": 1}]')

        with open(input_file, "w", encoding="utf-8") as file:
            file.write("[1]")

        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(code_file, input_file)

    assert stdout.getvalue() == ""
    assert "Machine code can not be loaded properly." in caplog.text


def test_missing_input_file_is_logged(caplog) -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        code_file = os.path.join(tmpdir, "code.json")

        with open(code_file, "w", encoding="utf-8") as file:
            file.write('[{"opcode": "inbox", "arg": null}]')

        with contextlib.redirect_stdout(io.StringIO()) as stdout:
            machine.main(code_file, os.path.join(tmpdir, "missing.json"))

    assert stdout.getvalue() == ""
    assert "missing.json" in caplog.text
