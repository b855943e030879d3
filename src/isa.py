from __future__ import annotations

import json
from enum import Enum
from json import JSONEncoder
from typing import Any


class Opcode(str, Enum):
    """ Opcode инструкций Human Resource Machine.

    Могут быть поделёны на две группы:

    1. Операции управления потоком исполнения: "JMP", "JZ", "JN", "HLT".

    2. Операции над данными: все остальные


    и на две категории:

    1. Исполняемые без аргументов: "INBOX", "OUTBOX", "HLT".

    2. Исполняемые с одним аргументом: все остальные.
    """

    INBOX = "inbox"
    OUTBOX = "outbox"
    COPY_FROM = "copyfrom"
    COPY_TO = "copyto"
    ADD = "add"
    SUB = "sub"
    INC = "bump+"
    DEC = "bump-"
    JMP = "jump"
    JZ = "jump zero"
    JN = "jump neg"
    # Служебная инструкция: дописывается машиной в конец программы
    HLT = "halt"

    @staticmethod
    def memory_operations() -> set[Opcode]:
        """ Множество команд, работающих с ячейкой памяти.

        Аргументом этих команд является адрес ячейки (индекс с нуля).
        """
        return {Opcode.COPY_FROM, Opcode.COPY_TO, Opcode.ADD, Opcode.SUB, Opcode.INC, Opcode.DEC}

    @staticmethod
    def control_flow_operations() -> set[Opcode]:
        """ Множество команд перехода.

        Аргументом этих команд является номер строки программы (нумерация с единицы, как в игре).
        """
        return {Opcode.JMP, Opcode.JZ, Opcode.JN}

    @staticmethod
    def unary_operations() -> set[Opcode]:
        """ Множество команд с одним аргументом. """
        return Opcode.memory_operations().union(Opcode.control_flow_operations())

    @staticmethod
    def no_operand_operations() -> set[Opcode]:
        """ Множество команд без аргументов"""
        return {Opcode.INBOX, Opcode.OUTBOX, Opcode.HLT}

    def __str__(self) -> str:
        """Переопределение стандартного поведения `__str__` для `Enum`: вместо
        `Opcode.JZ` вернуть `jump zero`.
        """
        return str(self.value)

    def __repr__(self) -> str:
        return self.__str__()


class Instruction:
    """ Декодированная инструкция программы: код операции и, возможно, аргумент.

    Аргумент - адрес ячейки памяти для операций над данными и номер строки
    (с единицы) для операций перехода.
    """

    opcode: Opcode
    arg: int | None

    def __init__(self, opcode: Opcode | str, arg: int | None = None) -> None:
        # Неизвестный код операции - ValueError из конструктора Opcode
        opcode = Opcode(opcode)
        if opcode in Opcode.unary_operations():
            if isinstance(arg, bool) or not isinstance(arg, int) or arg < 0:
                raise ValueError("Instruction '{}' requires a non-negative integer argument, got {!r}".format(opcode, arg))
        elif arg is not None:
            raise ValueError("Instruction '{}' takes no argument, got {!r}".format(opcode, arg))
        self.opcode = opcode
        self.arg = arg

    @staticmethod
    def inbox() -> Instruction:
        return Instruction(Opcode.INBOX)

    @staticmethod
    def outbox() -> Instruction:
        return Instruction(Opcode.OUTBOX)

    @staticmethod
    def copy_from(address: int) -> Instruction:
        return Instruction(Opcode.COPY_FROM, address)

    @staticmethod
    def copy_to(address: int) -> Instruction:
        return Instruction(Opcode.COPY_TO, address)

    @staticmethod
    def add(address: int) -> Instruction:
        return Instruction(Opcode.ADD, address)

    @staticmethod
    def sub(address: int) -> Instruction:
        return Instruction(Opcode.SUB, address)

    @staticmethod
    def inc(address: int) -> Instruction:
        """ Bump+ в терминах игры. """
        return Instruction(Opcode.INC, address)

    @staticmethod
    def dec(address: int) -> Instruction:
        """ Bump- в терминах игры. """
        return Instruction(Opcode.DEC, address)

    @staticmethod
    def jump(line: int) -> Instruction:
        return Instruction(Opcode.JMP, line)

    @staticmethod
    def jump_if_zero(line: int) -> Instruction:
        return Instruction(Opcode.JZ, line)

    @staticmethod
    def jump_if_neg(line: int) -> Instruction:
        return Instruction(Opcode.JN, line)

    @staticmethod
    def halt() -> Instruction:
        return Instruction(Opcode.HLT)

    @staticmethod
    def from_json(json_obj: Any) -> Instruction | None:
        try:
            instance: Instruction = Instruction(Opcode(json_obj["opcode"]), json_obj.get("arg"))
        except (TypeError, KeyError, ValueError, AttributeError):
            return None
        return instance

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Instruction):
            return self.opcode == other.opcode and self.arg == other.arg
        return False

    def __hash__(self) -> int:
        return hash((self.opcode, self.arg))

    def __str__(self) -> str:
        if self.arg is None:
            return str(self.opcode)
        return "{} {}".format(self.opcode, self.arg)

    def __repr__(self) -> str:
        return {key: value for key, value in self.__dict__.items() if value is not None}.__str__()


class Code:
    """ Представление структуры для хранения декодированной программы"""

    contents: list[Instruction]
    """Список инструкций программы."""

    def __init__(self, contents: list[Instruction] | None = None) -> None:
        self.contents = contents if contents is not None else []

    def __str__(self) -> str:
        return self.contents.__str__()

    def __len__(self) -> int:
        return len(self.contents)

    def append(self, elem: Instruction) -> None:
        self.contents.append(elem)

    @staticmethod
    def to_json(code: Code) -> str:
        return CodeEncoder(indent = 4).encode(code.contents)


class CodeEncoder(JSONEncoder):
    """ Вспомогательный класс для получения строкового представления программы. """
    def default(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, Instruction):
            return {"opcode": obj.opcode.value, "arg": obj.arg}
        return super().default(obj)


def read_code(filename: str) -> Code:
    """ Чтение декодированной программы из файла.

    Формат - JSON-массив объектов вида {"opcode": "jump zero", "arg": 4}.
    """

    with open(filename, encoding="utf-8") as file:
        code_text: list[dict[str, Any]] = json.loads(file.read())
        code: Code = Code()

    if not isinstance(code_text, list):
        raise ValueError("Machine code should be a JSON array of instructions.")

    for index, instr in enumerate(code_text):
        term: Instruction | None = Instruction.from_json(instr)
        if term is None:
            raise ValueError("Incorrect instruction at line {}: {}".format(index + 1, instr))
        code.append(term)

    return code


def write_code(filename: str, code: Code) -> None:
    """Записать программу в файл. """
    with open(filename, "w", encoding="utf-8") as file:
        buf = Code.to_json(code)
        file.write(buf)
