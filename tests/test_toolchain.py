"""
End-to-end tests: SOC8 source -> assembler -> image -> emulator.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import io

import pytest
from soc8_asm import Assembler, AssemblerError, AsmErrorKind, assemble, assemble_file
from soc8_emulator import SOC8Emulator, CpuState, StopReason, FaultKind


def _execute(binary: bytes, **kwargs) -> SOC8Emulator:
    kwargs.setdefault('stdout', io.StringIO())
    emu = SOC8Emulator(**kwargs)
    emu.load_program(binary)
    emu.run()
    return emu


def _final_state(emu: SOC8Emulator):
    return (emu.state, emu.fault, emu.regs.snapshot(), emu.regs.PC,
            emu.mem.dump(), list(emu.diagnostics))


class TestScenarios:

    def test_store_then_exit(self):
        binary = assemble("STORE R0, 5\nEXIT")
        assert binary == bytes([0x01, 0x00, 0x05, 0x00])
        emu = _execute(binary)
        assert emu.regs.read(0) == 5
        assert emu.state == CpuState.HALTED

    def test_add_wraps_with_same_register(self):
        emu = _execute(assemble("STORE R0, 250\nADD R0, R0, 10\nEXIT"))
        assert emu.regs.read(0) == (250 + 250 + 10) % 256

    def test_add_wraps_with_zero_source(self):
        emu = _execute(assemble("STORE R0, 250\nADD R0, R1, 10\nEXIT"))
        assert emu.regs.read(0) == (250 + 0 + 10) % 256 == 4

    def test_unknown_mnemonic(self):
        a = Assembler()
        with pytest.raises(AssemblerError) as exc:
            a.assemble("STORE R0, 5\nFOO\nEXIT")
        assert exc.value.kind == AsmErrorKind.UNKNOWN_MNEMONIC
        assert a.binary == b''

    def test_unknown_opcode_first(self):
        emu = _execute(bytes([0xFF]))
        assert emu.fault.kind == FaultKind.UNKNOWN_INSTRUCTION
        assert all(v == 0 for v in emu.regs.snapshot())

    def test_assemble_file(self, tmp_path):
        path = tmp_path / "prog.asm"
        path.write_text("STORE R2, 9\nDPR R2\nEXIT\n", encoding="utf-8")
        assert assemble_file(str(path)) == bytes([0x01, 0x02, 0x09, 0x07, 0x02, 0x00])

    def test_dpr_program(self):
        out = io.StringIO()
        emu = _execute(assemble("STORE R1, 7\nDPR R1\nSUB R1, R2, 2\nDPR R1\nEXIT"),
                       stdout=out)
        assert out.getvalue() == "Register R1: 7\nRegister R1: 5\n"
        assert emu.diagnostics == [(1, 7), (1, 5)]


class TestProperties:

    SOURCE = "\n".join([
        "STORE R0, 200",
        "LOAD R1, 100",
        "ADD R2, R0, 1",
        "ADD R2, R1, 0",
        "SUB R3, R1, 7",
        "DPR R2",
        "EXIT",
    ])

    HAND_ENCODED = bytes([
        0x01, 0x00, 200,
        0x02, 0x01, 100,
        0x03, 0x02, 0x00, 1,
        0x03, 0x02, 0x01, 0,
        0x04, 0x03, 0x01, 7,
        0x07, 0x02,
        0x00,
    ])

    def test_round_trip_matches_hand_encoding(self):
        assert assemble(self.SOURCE) == self.HAND_ENCODED
        assembled = _execute(assemble(self.SOURCE))
        hand = _execute(self.HAND_ENCODED)
        assert assembled.regs.snapshot() == hand.regs.snapshot()
        assert hand.regs.read(2) == (0 + 200 + 1 + 100) % 256
        assert hand.regs.read(3) == (0 - 100 - 7) % 256

    def test_profiles_agree_without_branches(self):
        assert assemble(self.SOURCE, 'classic') == assemble(self.SOURCE, 'resolved')

    @pytest.mark.parametrize("binary", [
        HAND_ENCODED,
        bytes([0x01, 0x00, 0x05, 0x03, 0x00, 0x14, 0x01]),   # faults
        bytes([0x01, 0x00, 0x01] * 84 + [0x03, 0x00, 0x00, 0x00]),
    ])
    def test_running_twice_gives_identical_state(self, binary):
        first = _final_state(_execute(binary))
        second = _final_state(_execute(binary))
        assert first == second

    def test_reloading_same_emulator(self):
        emu = _execute(self.HAND_ENCODED)
        first = _final_state(emu)
        emu.load_program(self.HAND_ENCODED)
        emu.run()
        assert _final_state(emu) == first

    def test_emulators_are_independent(self):
        a = SOC8Emulator(stdout=io.StringIO())
        b = SOC8Emulator(stdout=io.StringIO())
        a.load_program(assemble("STORE R0, 1\nSTORE R0, 2\nEXIT"))
        b.load_program(assemble("STORE R0, 9\nEXIT"))
        a.step()
        b.step()
        assert (a.regs.read(0), b.regs.read(0)) == (1, 9)
        assert b.step() == StopReason.HALT
        a.run()
        assert (a.regs.read(0), b.regs.read(0)) == (2, 9)


class TestResolvedProfile:
    """Branching programs only behave under the resolved profile."""

    COUNTDOWN = "\n".join([
        "STORE R0, 3",
        "loop:",
        "IF R0, 0, done",
        "DPR R0",
        "SUB R0, R1, 1",
        "JMP loop",
        "done:",
        "EXIT",
    ])

    def test_countdown_encoding(self):
        a = Assembler(profile='resolved')
        binary = a.assemble(self.COUNTDOWN)
        assert a.labels == {'loop': 3, 'done': 15}
        assert binary == bytes([
            0x01, 0x00, 0x03,
            0x05, 0x00, 0x00, 15,
            0x07, 0x00,
            0x04, 0x00, 0x01, 0x01,
            0x06, 3,
            0x00,
        ])

    def test_countdown_runs(self):
        emu = _execute(assemble(self.COUNTDOWN, 'resolved'), profile='resolved')
        assert emu.state == CpuState.HALTED
        assert emu.diagnostics == [(0, 3), (0, 2), (0, 1)]
        assert emu.regs.read(0) == 0

    def test_countdown_classic_encoding(self):
        a = Assembler(profile='classic')
        binary = a.assemble(self.COUNTDOWN)
        assert a.labels == {'loop': 3, 'done': 15}
        assert binary == bytes([
            0x01, 0x00, 0x03,
            0x05, 0x00, 0x00,
            0x07, 0x00,
            0x04, 0x00, 0x01, 0x01,
            0x06,
            0x00,
        ])
