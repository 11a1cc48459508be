"""Tests for name conversion."""

import re

from xcbind.generator.names import (
    constant_name,
    convert_extension_name,
    convert_name,
    sanitize_field_name,
)


def describe_convert_name():
    def splits_capitalized_words(expect):
        expect(convert_name("QueryExtension")) == "query_extension"
        expect(convert_name("CreateWindow")) == "create_window"

    def keeps_acronym_runs_together(expect):
        expect(convert_name("XF86VidModeGetGammaRamp")) == "xf86_vid_mode_get_gamma_ramp"
        expect(convert_name("GetXIDRange")) == "get_xid_range"
        expect(convert_name("WINDOW")) == "window"

    def leaves_capital_starting_next_word_out_of_acronym(expect):
        expect(convert_name("XFixes")) == "x_fixes"
        expect(convert_name("XCMisc")) == "xc_misc"
        expect(convert_name("GLXContext")) == "glx_context"

    def splits_lowercase_runs(expect):
        expect(convert_name("input")) == "input"
        expect(convert_name("xinputQuery")) == "xinput_query"

    def splits_digits_off_lowercase_runs(expect):
        expect(convert_name("x11")) == "x_11"
        expect(convert_name("xf86_vid_mode")) == "xf_86_vid_mode"

    def special_cases_decnet(expect):
        expect(convert_name("DECnet")) == "decnet"

    def skips_non_alphanumeric_characters(expect):
        expect(convert_name("BIG-REQUESTS")) == "big_requests"
        expect(convert_name("Fixed_Point")) == "fixed_point"

    def is_idempotent_on_its_output(expect):
        # Outputs with a digit right after a lowercase letter split again
        for name in ["QueryExtension", "GetXIDRange", "POINTFIX", "Card32", "DeviceId"]:
            converted = convert_name(name)
            expect(re.search(r"[a-z][0-9]", converted)) == None
            expect(convert_name(converted)) == converted

    def is_deterministic(expect):
        expect(convert_name("ChangeWindowAttributes")) == convert_name("ChangeWindowAttributes")


def describe_convert_extension_name():
    def lowercases_most_extensions(expect):
        expect(convert_extension_name("RandR")) == "randr"
        expect(convert_extension_name("XFixes")) == "xfixes"
        expect(convert_extension_name("Input")) == "input"

    def splits_special_extensions(expect):
        expect(convert_extension_name("XPrint")) == "x_print"
        expect(convert_extension_name("XCMisc")) == "xc_misc"
        expect(convert_extension_name("BigRequests")) == "big_requests"


def describe_constant_name():
    def uppercases(expect):
        expect(constant_name("xcb_randr_major_version")) == "XCB_RANDR_MAJOR_VERSION"


def describe_sanitize_field_name():
    def renames_rust_keywords(expect):
        expect(sanitize_field_name("type")) == "type_"
        expect(sanitize_field_name("match")) == "match_"

    def keeps_other_names(expect):
        expect(sanitize_field_name("window")) == "window"
        expect(sanitize_field_name("class")) == "class"
