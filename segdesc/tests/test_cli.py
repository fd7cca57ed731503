"""Tests for CLI interface."""

import json

from click.testing import CliRunner

from segdesc.cli import cli


def describe_decode_command():
    def shows_default_code_segment(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0x00CF9A000000FFFF"])

        expect(result.exit_code) == 0
        expect(result.output).includes("code")
        expect(result.output).includes("32-bit")
        expect(result.output).includes("386-compat")

    def accepts_bytes(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "--bytes", "ff ff 00 00 00 92 cf 00", "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["value"]) == "0x00cf92000000ffff"
        expect(data["segment_type"]) == "data"
        expect(data["attributes"]) == {"accessed": False, "writable": True, "expand_down": False}

    def outputs_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0x00AF9A000000FFFF", "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["code_size"]) == 64
        expect(data["notes"]) == ["reserved", "x86-64-compat"]
        expect(data["fields"]["use64"]) == True
        expect(data["bounds"]["linear_max"]) == 0xFFFFFFFF

    def has_no_bounds_when_not_present(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0", "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["segment_type"]) == "notPresent"
        expect(data["attributes"]) == {}
        expect(data["bounds"]) == None

    def reads_options_from_environment(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0"], env={"SEGDESC_DECODE_JSON": "1"})

        expect(result.exit_code) == 0
        expect(json.loads(result.output)["notes"]) == ["286-compat"]

    def shows_range_of_zero_limit_segment(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0x0000920000000000"])

        expect(result.exit_code) == 0
        expect(result.output).includes("0x0000_0000 - 0x0000_0000")
        expect("empty" in result.output) == False

    def fails_with_malformed_value(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "0xZZ"])

        expect(result.exit_code) == 2
        expect(result.output).includes("is not a valid number")

    def fails_with_malformed_bytes(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode", "--bytes", "ff ff"])

        expect(result.exit_code) == 2
        expect(result.output).includes("expected 8 hex bytes")

    def requires_a_value(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["decode"])

        expect(result.exit_code) == 2
        expect(result.output).includes("Provide a VALUE or --bytes")


def describe_encode_command():
    def packs_fields(expect):
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "encode",
                "--limit",
                "0xfffff",
                "--type",
                "0b11010",
                "--use32",
                "--granularity",
                "page",
            ],
        )

        expect(result.exit_code) == 0
        lines = result.output.splitlines()
        expect(lines[0]) == "0x00cf9a000000ffff"
        expect(lines[1]) == "ff ff 00 00 00 9a cf 00"

    def defaults_to_present(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode"])

        expect(result.exit_code) == 0
        expect(result.output.splitlines()[0]) == "0x0000800000000000"

    def reads_type_from_environment(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode"], env={"SEGDESC_ENCODE_TYPE": "0x1a"})

        expect(result.exit_code) == 0
        expect(result.output.splitlines()[0]) == "0x00009a0000000000"

    def rejects_oversized_fields(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["encode", "--limit", "0x100000"])

        expect(result.exit_code) == 2
        expect(result.output).includes("larger than 0xfffff")


def describe_transition_commands():
    def changes_type(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["change-type", "0x00CF9A000000FFFF", "data"])

        expect(result.exit_code) == 0
        expect(result.output.splitlines()[0]) == "0x00cf90000000ffff"

    def changes_to_not_present(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["change-type", "0x00CF9A000000FFFF", "notPresent"])

        expect(result.exit_code) == 0
        expect(result.output.splitlines()[0]) == "0x0000000000000000"

    def rejects_unknown_type(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["change-type", "0", "gate"])

        expect(result.exit_code) == 2

    def clears_reserved(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["clear-reserved", "0x00AF9A000000FFFF"])

        expect(result.exit_code) == 0
        expect(result.output.splitlines()[0]) == "0x00a09a0000000000"


def describe_preset_commands():
    def lists_presets(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["presets"])

        expect(result.exit_code) == 0
        expect(result.output).includes("kernel-code32")
        expect(result.output).includes("tss32")

    def decodes_preset(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["preset", "tss32", "--json"])

        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["segment_type"]) == "system"
        expect(data["attributes"]) == {"subtype": 9}

    def fails_with_unknown_preset(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["preset", "nope"])

        expect(result.exit_code) == 1
        expect(result.output).includes("Unknown preset: nope")


def describe_main_group():
    def shows_help(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        expect(result.exit_code) == 0
        expect(result.output).includes("decode")
        expect(result.output).includes("encode")
