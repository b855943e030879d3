from __future__ import annotations

import json
import logging
import sys
from collections import deque
from enum import Enum
from typing import Callable, Iterable

from isa import Code, Instruction, Opcode, read_code


# Количество ячеек памяти ("плиток на полу" в терминах игры)
MEMORY_SIZE: int = 16


class ProgramError(Exception):
    """ Ошибка в исполняемой программе, обнаруженная на конкретном шаге.

    Не является ошибкой окружения: повторный запуск той же программы приведёт к ней же.
    """

    line: int | None
    """ Номер строки (с единицы) инструкции, вызвавшей ошибку."""

    instruction: Instruction | None

    def __init__(self, message: str, line: int | None = None, instruction: Instruction | None = None) -> None:
        super().__init__(message)
        self.line = line
        self.instruction = instruction


class AddressOutOfBoundsError(ProgramError):
    """ Обращение к ячейке памяти за пределами [0, memory_size)."""


class JumpOutOfBoundsError(ProgramError):
    """ Переход на строку за пределами программы."""


class Flow(str, Enum):
    CONTINUE = "continue"
    JUMP = "jump"
    HALT = "halt"

    def __str__(self) -> str:
        return str(self.value)


class Next:
    """ Решение о том, что делать после исполнения инструкции.

    Каждый обработчик инструкции возвращает одно из трёх:

    1. `Next.CONTINUE` - перейти к следующей строке.

    2. `Next.jump_to(target)` - перейти на строку `target` (индекс с нуля).

    3. `Next.HALT` - остановить машину.

    Так исчерпание входной очереди, явный переход и обычное исполнение
    обрабатываются единообразно в конце цикла исполнения.
    """

    CONTINUE: Next
    HALT: Next

    flow: Flow
    target: int | None

    def __init__(self, flow: Flow, target: int | None = None) -> None:
        self.flow = flow
        self.target = target

    @staticmethod
    def jump_to(target: int) -> Next:
        return Next(Flow.JUMP, target)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Next):
            return self.flow == other.flow and self.target == other.target
        return False

    def __hash__(self) -> int:
        return hash((self.flow, self.target))

    def __repr__(self) -> str:
        if self.target is None:
            return "Next({})".format(self.flow)
        return "Next({} {})".format(self.flow, self.target)


Next.CONTINUE = Next(Flow.CONTINUE)
Next.HALT = Next(Flow.HALT)


class Machine:
    """Модель Human Resource Machine.

    Состояние машины: аккумулятор ("значение в руках"), банк ячеек памяти,
    счётчик команд, входная и выходная очереди. Машина создаётся на один запуск
    и исполняется до останова.
    """

    _program: tuple[tuple[Instruction, int | None], ...]
    """ Программа: инструкция и её аргумент. Номера строк переходов уже переведены в индексы с нуля."""

    _accumulator: int
    """ Аккумулятор. До первого `inbox` значение не определено в терминах игры, по умолчанию 0."""

    _memory: list[int]
    """ Ячейки памяти фиксированного размера."""

    _program_counter: int
    """ Счётчик команд - индекс (с нуля) следующей инструкции."""

    _instruction_register: Instruction | None
    """ Регистр инструкций. Хранит исполняемую инструкцию после выборки."""

    _step_counter: int
    """ Кол-во исполненных инструкций с начала работы."""

    _halted: bool
    """ Флаг останова. Остановленная машина повторно не запускается."""

    _input_queue: deque[int]

    _output_queue: list[int]

    _handlers: dict[Opcode, Callable[[int | None], Next]]

    def __init__(self, program: Iterable[Instruction], memory_size: int = MEMORY_SIZE) -> None:
        if memory_size <= 0:
            raise ValueError("Memory size should be positive, got {}".format(memory_size))
        program = [*program, Instruction.halt()]
        self._program = tuple(
            (instruction, instruction.arg - 1 if instruction.opcode in Opcode.control_flow_operations() else instruction.arg)
            for instruction in program
        )
        self._accumulator = 0
        self._memory = [0] * memory_size
        self._program_counter = 0
        self._instruction_register = None
        self._step_counter = 0
        self._halted = False
        self._input_queue = deque()
        self._output_queue = []
        self._handlers = {
            Opcode.INBOX: self._inbox,
            Opcode.OUTBOX: self._outbox,
            Opcode.COPY_FROM: self._copy_from,
            Opcode.COPY_TO: self._copy_to,
            Opcode.ADD: self._add,
            Opcode.SUB: self._sub,
            Opcode.INC: self._inc,
            Opcode.DEC: self._dec,
            Opcode.JMP: self._jump,
            Opcode.JZ: self._jump_if_zero,
            Opcode.JN: self._jump_if_neg,
            Opcode.HLT: self._halt,
        }

    def __repr__(self) -> str:
        """Вернуть строковое представление состояния машины."""
        instruction: str = str(self._instruction_register) if self._instruction_register is not None else "-"
        return "STEP: {:3} | PC: {:3} | IR: '{:^13}' | AC: {:^6} | IN: {:3} | OUT: {:3}".format(
            self._step_counter,
            self._program_counter,
            instruction,
            self._accumulator,
            len(self._input_queue),
            len(self._output_queue),
        )

    @property
    def instructions(self) -> tuple[Instruction, ...]:
        """ Загруженная программа, включая дописанный в конец `halt`."""
        return tuple(instruction for instruction, _ in self._program)

    @property
    def accumulator(self) -> int:
        return self._accumulator

    @property
    def memory(self) -> list[int]:
        return list(self._memory)

    @property
    def program_counter(self) -> int:
        return self._program_counter

    @property
    def step_counter(self) -> int:
        return self._step_counter

    @property
    def halted(self) -> bool:
        return self._halted

    def _fault_line(self) -> int:
        return self._program_counter + 1

    def _check_address(self, address: int) -> int:
        if not 0 <= address < len(self._memory):
            raise AddressOutOfBoundsError(
                "Access memory out of bounds at line {}, requested address: {}".format(self._fault_line(), address),
                line = self._fault_line(),
                instruction = self._instruction_register)
        return address

    def _inbox(self, _: int | None) -> Next:
        """Взять следующее значение из входной очереди, остановиться если она пуста."""
        if not self._input_queue:
            return Next.HALT
        self._accumulator = self._input_queue.popleft()
        return Next.CONTINUE

    def _outbox(self, _: int | None) -> Next:
        self._output_queue.append(self._accumulator)
        return Next.CONTINUE

    def _copy_from(self, address: int | None) -> Next:
        assert address is not None
        self._accumulator = self._memory[self._check_address(address)]
        return Next.CONTINUE

    def _copy_to(self, address: int | None) -> Next:
        assert address is not None
        self._memory[self._check_address(address)] = self._accumulator
        return Next.CONTINUE

    def _add(self, address: int | None) -> Next:
        assert address is not None
        self._accumulator += self._memory[self._check_address(address)]
        return Next.CONTINUE

    def _sub(self, address: int | None) -> Next:
        assert address is not None
        self._accumulator -= self._memory[self._check_address(address)]
        return Next.CONTINUE

    def _inc(self, address: int | None) -> Next:
        """Увеличить значение ячейки и взять его в аккумулятор."""
        assert address is not None
        self._memory[self._check_address(address)] += 1
        return self._copy_from(address)

    def _dec(self, address: int | None) -> Next:
        """Уменьшить значение ячейки и взять его в аккумулятор."""
        assert address is not None
        self._memory[self._check_address(address)] -= 1
        return self._copy_from(address)

    def _jump(self, target: int | None) -> Next:
        assert target is not None
        if not 0 <= target < len(self._program):
            raise JumpOutOfBoundsError(
                "Jump out of program bounds at line {}, requested line: {}".format(self._fault_line(), target + 1),
                line = self._fault_line(),
                instruction = self._instruction_register)
        return Next.jump_to(target)

    def _jump_if_zero(self, target: int | None) -> Next:
        if self._accumulator == 0:
            return self._jump(target)
        return Next.CONTINUE

    def _jump_if_neg(self, target: int | None) -> Next:
        if self._accumulator < 0:
            return self._jump(target)
        return Next.CONTINUE

    def _halt(self, _: int | None) -> Next:
        return Next.HALT

    def execute_next_command(self) -> Next:
        """Выборка инструкции по счётчику команд, исполнение и применение решения о переходе."""
        if self._halted:
            raise RuntimeError("Machine has already halted")
        instruction, arg = self._program[self._program_counter]
        self._instruction_register = instruction
        next_step: Next = self._handlers[instruction.opcode](arg)
        self._step_counter += 1
        logging.debug(self.__repr__())

        match next_step.flow:
            case Flow.CONTINUE:
                self._program_counter += 1
            case Flow.JUMP:
                assert next_step.target is not None
                self._program_counter = next_step.target
            case Flow.HALT:
                self._halted = True
        return next_step

    def run(self, inbox: Iterable[int]) -> list[int]:
        """Исполнение программы над входной очередью до останова.

        Значения берутся из `inbox` в исходном порядке. Возвращает выходную очередь.
        """
        if self._halted:
            raise RuntimeError("Machine has already halted")
        self._input_queue = deque(inbox)
        logging.info("Run started: {} instructions, inbox: {}".format(len(self._program), list(self._input_queue)))

        while self.execute_next_command().flow is not Flow.HALT:
            pass

        logging.info("Halted at line {} after {} steps".format(self._program_counter + 1, self._step_counter))
        logging.info("Output buffer: {}".format(self._output_queue))
        return list(self._output_queue)

    @staticmethod
    def parse_input(text: str) -> list[int]:
        """Парсинг входной очереди: JSON-массив целых чисел, пустой текст - пустая очередь."""
        if text.strip() == "":
            return []
        values = json.loads(text)
        if not isinstance(values, list) or any(isinstance(value, bool) or not isinstance(value, int) for value in values):
            raise ValueError("Inbox should be a JSON array of integers, got: {}".format(text.strip()))
        return values


def main(code_file: str, input_file_name: str) -> None:
    """Функция запуска модели машины. Параметры -- имена файлов с программой
    (JSON, см. `isa.read_code`) и со входной очередью (JSON-массив целых чисел).
    """
    machine: Machine
    code: Code

    try:
        code = read_code(code_file)
    except ValueError as e:
        logging.error("Machine code can not be loaded properly.")
        logging.error(e)
        return

    try:
        with open(input_file_name, encoding="utf-8") as file:
            inbox: list[int] = Machine.parse_input(file.read())
            logging.info("Inbox: {}".format(inbox))
    except (FileNotFoundError, ValueError) as e:
        logging.error(e)
        return

    machine = Machine(code.contents)

    try:
        outbox = machine.run(inbox)
    except ProgramError as e:
        # use logging.exception to see the stacktrace
        logging.exception("Error: program fault at line {} ('{}').".format(e.line, e.instruction))
        logging.error("Watch latest instruction in logs.")
        logging.error(machine.__repr__())
        return

    print(outbox)
    logging.info("instr_counter: {} steps: {}".format(machine.program_counter, machine.step_counter))


if __name__ == "__main__":
    logging.getLogger().addHandler(logging.StreamHandler(sys.stdout))
    logging.getLogger().setLevel(logging.DEBUG)
    assert len(sys.argv) == 3, "Wrong arguments: machine.py <code_file> <input_file>"
    _, code_file, input_file = sys.argv
    logging.info("====================\nExecution started...")
    main(code_file, input_file)
    logging.info("Execution ended.")
