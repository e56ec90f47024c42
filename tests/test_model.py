"""
Model Tests for the pwasm opcode table generator.

Covers set analysis (max code, duplicates, validity masks), the byte map,
flag parsing and model construction, on small inline tables and on the
bundled WebAssembly table.
"""
import sys
import os
import dataclasses
import textwrap
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import yaml
from opgen.analyzer import analyze_set, check_unique_codes, max_code, validity_mask
from opgen.bytemap import NUM_BYTES, UNDEFINED
from opgen.encoder import Encoding, decode_leb128
from opgen.errors import ConfigError, DuplicateCodeError, EncodingRangeError, UnknownFlagError
from opgen.flags import FLAG_IDS, FLAGS, RESERVED_FLAGS, parse_flags
from opgen.loader import load_spec, parse_yaml_spec
from opgen.ops_model import build_model, parse_code, to_const


def build(text: str):
    """Build a model from an inline YAML table."""
    return build_model(parse_yaml_spec(yaml.safe_load(textwrap.dedent(text))))


TWO_SETS = """
    sets:
      - name: main
        encoding: byte
        ops:
          - { code: "0x00", name: unreachable, flags: "control" }
          - { code: "0x20", name: local.get, imm: INDEX, flags: "local" }
          - { code: "0x41", name: i32.const, imm: I32_CONST, flags: "const" }
      - name: simd
        prefix: "0xFD"
        encoding: leb128
        ops:
          - { code: "0x0F", name: i8x16.splat, num_lanes: 16 }
          - { code: "0x41", name: f32x4.eq, num_lanes: 4 }
          - { code: "0x80", name: i16x8.abs, num_lanes: 8 }
"""


class TestAnalyzer:

    def test_max_code(self):
        assert max_code([0x20, 0x05, 0xBF]) == 0xBF
        assert max_code([]) == 0

    def test_mask_bits(self):
        """Bit (b % 64) of word (b // 64) is set exactly for the codes given."""
        codes = [0x00, 0x3F, 0x40, 0x80, 0xFF]
        mask = validity_mask(codes)
        assert mask == (0x8000000000000001, 0x1, 0x1, 0x8000000000000000)
        for b in range(256):
            bit = (mask[b // 64] >> (b % 64)) & 1
            assert bit == (1 if b in codes else 0), f"byte 0x{b:02X}"

    def test_empty_mask(self):
        assert validity_mask([]) == (0, 0, 0, 0)

    def test_mask_range(self):
        with pytest.raises(EncodingRangeError):
            validity_mask([0x100])

    def test_duplicate(self):
        with pytest.raises(DuplicateCodeError) as exc:
            check_unique_codes("main", [0x01, 0x02, 0x01])
        assert exc.value.set_name == "main"
        assert exc.value.code == 0x01
        assert "0x01" in str(exc.value)

    def test_leb128_set_has_no_mask(self):
        analysis = analyze_set("simd", Encoding.LEB128, [0x0F, 0x80])
        assert analysis.mask is None
        assert analysis.max_code == 0x80

    def test_duplicate_checked_before_mask(self):
        with pytest.raises(DuplicateCodeError):
            analyze_set("main", Encoding.BYTE, [0x01, 0x01])


class TestFlags:

    def test_universe_order(self):
        assert FLAG_IDS == ('reserved', 'const', 'control', 'mem', 'global', 'local')
        assert [f.mask for f in FLAGS] == [0x01, 0x02, 0x04, 0x08, 0x10, 0x20]

    def test_parse(self):
        flags = parse_flags("const mem")
        assert flags.mask == 0x0A
        assert flags.ids == ('const', 'mem')
        assert 'mem' in flags
        assert 'local' not in flags

    def test_universe_order_wins_over_text_order(self):
        flags = parse_flags("local  global local")
        assert flags.ids == ('global', 'local')
        assert flags.mask == 0x30

    def test_empty(self):
        assert parse_flags("").mask == 0
        assert parse_flags(None).ids == ()
        assert str(parse_flags("")) == "none"

    def test_unknown(self):
        with pytest.raises(UnknownFlagError) as exc:
            parse_flags("const bogus", "i32.const")
        assert exc.value.token == "bogus"
        assert "i32.const" in str(exc.value)

    def test_reserved(self):
        assert RESERVED_FLAGS.mask == 0x01
        assert RESERVED_FLAGS.ids == ('reserved',)


class TestByteMap:

    def test_total(self):
        model = build(TWO_SETS)
        assert len(model.byte_map) == NUM_BYTES
        assert len(model.byte_flags) == NUM_BYTES

    def test_first_set_wins(self):
        model = build(TWO_SETS)
        assert model.byte_map[0x41].name == "i32.const"
        assert model.byte_map[0x41].opset.name == "main"

    def test_single_byte_leb128_codes_participate(self):
        model = build(TWO_SETS)
        assert model.byte_map[0x0F].name == "i8x16.splat"

    def test_multi_byte_codes_do_not(self):
        model = build(TWO_SETS)
        assert model.byte_map[0x80] is UNDEFINED

    def test_declaration_order(self):
        model = build("""
            sets:
              - name: second
                encoding: byte
                ops:
                  - { code: "0x05", name: b.op }
              - name: first
                encoding: byte
                ops:
                  - { code: "0x05", name: a.op }
        """)
        assert model.byte_map[0x05].name == "b.op"

    def test_byte_flags(self):
        model = build(TWO_SETS)
        assert model.byte_flags[0x20].mask == 0x20
        assert model.byte_flags[0x00].ids == ('control',)
        assert model.byte_flags[0x0F].mask == 0
        assert model.byte_flags[0xFF] is RESERVED_FLAGS


class TestModel:

    def test_to_const(self):
        assert to_const("local.get") == "LOCAL_GET"
        assert to_const("i32.trunc_sat_f32_s") == "I32_TRUNC_SAT_F32_S"

    def test_parse_code(self):
        assert parse_code("0x20") == 0x20
        assert parse_code("FD") == 0xFD
        with pytest.raises(ConfigError):
            parse_code("zz")
        with pytest.raises(ConfigError, match="quoted hex text"):
            parse_code(41)
        with pytest.raises(ConfigError):
            parse_code(True)

    def test_ops_in_declaration_order(self):
        model = build(TWO_SETS)
        assert [op.name for op in model.ops] == [
            "unreachable", "local.get", "i32.const", "i8x16.splat", "f32x4.eq", "i16x8.abs"]

    def test_opcode_bytes(self):
        model = build(TWO_SETS)
        ops = {op.name: op for op in model.ops}
        assert ops["local.get"].bytes == b'\x20'
        assert ops["i8x16.splat"].bytes == b'\xFD\x0F'
        assert ops["i16x8.abs"].bytes == b'\xFD\x80\x01'
        assert ops["i16x8.abs"].single_byte_code is None
        assert ops["i8x16.splat"].code_text == "0x0F"

    def test_masks_and_offsets(self):
        model = build(TWO_SETS)
        main = model.find_set("main")
        simd = model.find_set("simd")
        assert main.mask == (0x0000000100000001, 0x2, 0, 0)
        assert simd.mask is None
        assert [(row.set_name, row.ofs) for row in model.masks] == [
            ("main", 0), ("main", 1), ("main", 2), ("main", 3)]
        assert model.mask_offset(main) == 0
        assert model.mask_offset(simd) == -1
        assert main.max_code == 0x41
        assert simd.max_code == 0x80

    def test_built_model_is_read_only(self):
        model = build(TWO_SETS)
        with pytest.raises(dataclasses.FrozenInstanceError):
            model.sets[0].mask = None
        with pytest.raises(dataclasses.FrozenInstanceError):
            model.ops[0].code = 99
        assert model.find_set("main").mask is not None
        assert model.ops[0].code == 0x00

    def test_find_set_unknown(self):
        with pytest.raises(KeyError):
            build(TWO_SETS).find_set("nope")

    def test_duplicate_code(self):
        with pytest.raises(DuplicateCodeError):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x01", name: nop }
                      - { code: "0x01", name: nop2 }
            """)

    def test_same_code_in_different_sets(self):
        model = build("""
            sets:
              - name: main
                encoding: byte
                ops:
                  - { code: "0x01", name: nop }
              - name: misc
                prefix: "0xFC"
                encoding: leb128
                ops:
                  - { code: "0x01", name: i32.trunc_sat_f32_u }
        """)
        assert len(model.ops) == 2

    def test_unquoted_code_rejected(self):
        with pytest.raises(ConfigError, match="quoted hex text"):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: 41, name: i32.const }
            """)

    def test_byte_code_out_of_range(self):
        with pytest.raises(EncodingRangeError):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x100", name: wide }
            """)

    def test_prefix_out_of_range(self):
        with pytest.raises(ConfigError, match="prefix"):
            build("""
                sets:
                  - name: wide
                    prefix: "0x1FD"
                    encoding: leb128
                    ops:
                      - { code: "0x00", name: a }
            """)

    def test_unknown_encoding(self):
        with pytest.raises(ConfigError, match="Unknown encoding"):
            build("""
                sets:
                  - name: main
                    encoding: utf8
                    ops:
                      - { code: "0x00", name: a }
            """)

    def test_duplicate_set_name(self):
        with pytest.raises(ConfigError, match="Duplicate opcode set name"):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x00", name: a }
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x01", name: b }
            """)

    def test_duplicate_constant(self):
        with pytest.raises(ConfigError, match="PWASM_OP_A_B"):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x00", name: a.b }
                      - { code: "0x01", name: a_b }
            """)

    def test_unknown_flag(self):
        with pytest.raises(UnknownFlagError):
            build("""
                sets:
                  - name: main
                    encoding: byte
                    ops:
                      - { code: "0x00", name: a, flags: "pure" }
            """)


class TestBundledTable:
    """The WebAssembly table shipped with the package."""

    def test_sets(self):
        model = build_model(load_spec())
        assert [s.name for s in model.sets] == ["main", "misc", "simd"]
        assert model.find_set("misc").prefix == 0xFC
        assert model.find_set("simd").prefix == 0xFD

    def test_main_mask_matches_codes(self):
        model = build_model(load_spec())
        main = model.find_set("main")
        codes = {op.code for op in main.ops}
        for b in range(256):
            assert bool(main.mask[b // 64] >> (b % 64) & 1) == (b in codes)

    def test_leb128_bytes_decode(self):
        model = build_model(load_spec())
        for opset in model.sets:
            if opset.encoding is not Encoding.LEB128:
                continue
            for op in opset.ops:
                assert op.bytes[0] == opset.prefix
                assert decode_leb128(op.bytes, 1) == (op.code, len(op.bytes) - 1)

    def test_well_known_ops(self):
        model = build_model(load_spec())
        assert model.byte_map[0x20].name == "local.get"
        assert model.byte_map[0x28].mem_size == 4
        assert model.byte_map[0xFF] is UNDEFINED
        assert model.byte_flags[0x41].ids == ('const',)
