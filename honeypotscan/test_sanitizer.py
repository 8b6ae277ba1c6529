import pytest

from .services.sanitizer import collapse_blank_lines, remove_comments, sanitize_contract_code


def test_string_literal_with_slashes_survives(safe_contract):
    code = safe_contract.replace(
        'string public website = "https://example.com/token";',
        'string public website = "http://example.com"; // real comment',
    )
    result = sanitize_contract_code(code)

    assert result.is_valid
    assert '"http://example.com"' in result.sanitized
    assert "real comment" not in result.sanitized
    assert "SPDX-License-Identifier" not in result.sanitized


def test_block_comments_removed_but_strings_kept():
    code = 'string a = "/* not a comment */"; /* gone */ uint b = 1;'
    assert remove_comments(code) == 'string a = "/* not a comment */";  uint b = 1;'


def test_escaped_quotes_do_not_end_string():
    code = 'string a = "say \\"hi\\" // still string"; // comment'
    assert remove_comments(code) == 'string a = "say \\"hi\\" // still string"; '


def test_single_quoted_strings_are_respected():
    code = "string a = 'ipfs://cid'; // comment\nuint b;"
    assert remove_comments(code) == "string a = 'ipfs://cid'; \nuint b;"


def test_unterminated_block_comment_swallows_rest():
    assert remove_comments("uint a; /* never closed\nuint b;") == "uint a; \n"


def test_block_comment_keeps_its_line_breaks():
    code = "uint a; /* one\ntwo\nthree */ uint b;\nuint c;"
    assert remove_comments(code) == "uint a; \n\n uint b;\nuint c;"


def test_collapse_blank_lines_maps_back_to_input_lines():
    text, line_map = collapse_blank_lines("\n\n  a\n\n\n\nb  \n\n")
    assert text == "a\n\nb"
    assert line_map == [3, 4, 7]


def test_line_map_points_at_original_lines(safe_contract):
    code = safe_contract.replace(
        "contract SafeToken {",
        "/**\n * Multi-line\n * doc comment\n */\n\n\n\ncontract SafeToken {",
    )
    result = sanitize_contract_code(code)
    original = code.split("\n")

    assert result.is_valid
    assert len(result.line_map) == len(result.sanitized.split("\n"))
    for line, origin in zip(result.sanitized.split("\n"), result.line_map):
        if line.strip():
            assert line.strip() in original[origin - 1]


def test_line_endings_and_blank_runs_normalized(safe_contract):
    code = safe_contract.replace("\n", "\r\n").replace(
        "contract SafeToken {", "\r\n\r\n\r\n\r\ncontract SafeToken {")
    result = sanitize_contract_code(code)

    assert result.is_valid
    assert "\r" not in result.sanitized
    assert "\n\n\n" not in result.sanitized
    assert result.stats["chars"] == len(result.sanitized)
    assert result.stats["lines"] == result.sanitized.count("\n") + 1


@pytest.mark.parametrize("code", [None, "", 42])
def test_rejects_missing_code(code):
    result = sanitize_contract_code(code)
    assert not result.is_valid
    assert result.error == "No code provided"
    assert result.stats == {"lines": 0, "chars": 0}


def test_rejects_oversized_input(safe_contract):
    code = safe_contract + " " * (100 * 1024)
    result = sanitize_contract_code(code)
    assert not result.is_valid
    assert "too large" in result.error


def test_oversized_limit_is_configurable(safe_contract):
    code = safe_contract + " " * (100 * 1024)
    assert sanitize_contract_code(code, max_size=1024 * 1024).is_valid


def test_rejects_too_short():
    result = sanitize_contract_code("pragma solidity ^0.8.0; contract A {}")
    assert not result.is_valid
    assert "too short" in result.error


def test_requires_pragma(safe_contract):
    code = safe_contract.replace("pragma solidity ^0.8.0;", "")
    result = sanitize_contract_code(code)
    assert not result.is_valid
    assert "No valid Solidity" in result.error


def test_requires_declaration():
    code = "pragma solidity ^0.8.0;\n\nfunction helper(uint256 a) pure returns (uint256) { return a * 2; }"
    result = sanitize_contract_code(code)
    assert not result.is_valid
    assert "No valid Solidity" in result.error


@pytest.mark.parametrize("declaration", ["interface IToken {", "library SafeMath {", "abstract contract Base {"])
def test_accepts_interface_and_library(declaration):
    code = ("pragma solidity ^0.8.0;\n\n" + declaration +
            "\n    function totalSupply() external view returns (uint256);\n}")
    assert sanitize_contract_code(code).is_valid


@pytest.mark.parametrize("payload", [
    "// <script>alert(1)</script>",
    "/* <iframe src=x> */",
    '/* <a href="#" onclick="steal()"> */',
    '// javascript:alert(document.cookie)',
    '// data:text/html;base64,PHNjcmlwdD4=',
    "// %3Cscript%3Ealert(1)",
    "// &lt;script&gt;alert(1)",
    "// \\x3cscript",
])
def test_injection_checked_before_comment_stripping(safe_contract, payload):
    result = sanitize_contract_code(safe_contract + payload)
    assert not result.is_valid
    assert result.sanitized == ""
    assert "HTML/script" in result.error


def test_injection_check_can_be_skipped_for_verified_source(safe_contract):
    result = sanitize_contract_code(safe_contract + "// <div>", check_injection=False)
    assert result.is_valid


def test_comparison_operators_are_not_html(safe_contract):
    code = safe_contract.replace("return true;", "if (amount < limit && on) { return true; }\n        return true;")
    assert sanitize_contract_code(code).is_valid
