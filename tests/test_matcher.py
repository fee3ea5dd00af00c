import pytest

from solvanity.core import derive_keypair
from solvanity.matcher import (
    MatchKind,
    MatchResult,
    PatternConfig,
    RarityRule,
    RuleKind,
    compile_rules,
    estimate_difficulty,
    find_rare_pattern,
    prefix_matches,
    validate_base58_prefix,
)


def rules(*entries):
    return compile_rules([PatternConfig(p, n) for p, n in entries])


class TestPrefix:
    def test_exact_prefix(self):
        assert prefix_matches(b"abcdef", b"abc")

    def test_case_sensitive(self):
        assert not prefix_matches(b"abcdef", b"ABC")

    def test_empty_prefix_always_matches(self):
        assert prefix_matches(b"abcdef", b"")

    def test_prefix_longer_than_address(self):
        assert not prefix_matches(b"ab", b"abc")

    def test_match_elsewhere_is_not_prefix(self):
        assert not prefix_matches(b"xabc", b"abc")


class TestCompileRules:
    def test_none_and_empty_give_no_rules(self):
        assert compile_rules(None) == ()
        assert compile_rules([]) == ()

    def test_empty_patterns_dropped(self):
        compiled = rules(("", 3), ("a", 3), ("", 1))
        assert compiled == (RarityRule(RuleKind.RUN, b"a", 3),)

    def test_kinds_by_unit_length(self):
        compiled = rules(("z", 5), ("ab", 2))
        assert [r.kind for r in compiled] == [RuleKind.RUN, RuleKind.BLOCK]
        assert compiled[1].unit == b"ab"

    def test_order_preserved(self):
        compiled = rules(("b", 2), ("a", 2))
        assert [r.unit for r in compiled] == [b"b", b"a"]

    def test_minimum_below_one_raised_to_one(self):
        assert rules(("a", 0))[0].min_repeat_count == 1


class TestRunRule:
    def test_first_qualifying_run_wins(self):
        assert find_rare_pattern(b"aaabccaaaa", rules(("a", 3))) == "aaa"

    def test_full_run_length_reported(self):
        assert find_rare_pattern(b"xaaaaay", rules(("a", 3))) == "aaaaa"

    def test_trailing_run(self):
        assert find_rare_pattern(b"xyzaaaa", rules(("a", 4))) == "aaaa"

    def test_short_runs_skipped(self):
        assert find_rare_pattern(b"aabaabaa", rules(("a", 3))) is None

    def test_later_longer_run_found_after_short_ones(self):
        assert find_rare_pattern(b"aabaaab", rules(("a", 3))) == "aaa"

    def test_address_too_short(self):
        assert find_rare_pattern(b"aa", rules(("a", 3))) is None


class TestBlockRule:
    def test_maximal_tiling(self):
        assert find_rare_pattern(b"xyxyxyz", rules(("xy", 2))) == "xyxyxy"

    def test_not_enough_tiles(self):
        assert find_rare_pattern(b"xyzxyzxy", rules(("xy", 2))) is None

    def test_offset_tiling(self):
        assert find_rare_pattern(b"qxyxyq", rules(("xy", 2))) == "xyxy"

    def test_first_qualifying_offset(self):
        assert find_rare_pattern(b"abab-ababab", rules(("ab", 2))) == "abab"

    def test_resumes_after_failed_tiling(self):
        assert find_rare_pattern(b"ab-abab", rules(("ab", 2))) == "abab"

    def test_address_shorter_than_required(self):
        assert find_rare_pattern(b"ababa", rules(("ab", 3))) is None

    def test_overlapping_units_do_not_count(self):
        assert find_rare_pattern(b"aaaaa", rules(("aa", 3))) is None
        assert find_rare_pattern(b"aaaaaa", rules(("aa", 3))) == "aaaaaa"


class TestRulePrecedence:
    def test_first_rule_in_config_order_wins(self):
        compiled = rules(("b", 2), ("a", 2))
        assert find_rare_pattern(b"aaaaaabb", compiled) == "bb"

    def test_falls_through_to_later_rule(self):
        compiled = rules(("z", 2), ("a", 2))
        assert find_rare_pattern(b"aaaaaabb", compiled) == "aaaaaa"

    def test_no_rules_never_match(self):
        assert find_rare_pattern(b"aaaaaaaaaa", ()) is None


def test_match_result_exposes_encodings():
    kp = derive_keypair(bytes(32))
    result = MatchResult(MatchKind.RARITY, kp, 7, "aaa")
    assert result.address == kp.address_str
    assert result.private_key == kp.private_key


class TestValidatePrefix:
    def test_valid(self):
        assert validate_base58_prefix("Sol") == "Sol"

    def test_strips_whitespace(self):
        assert validate_base58_prefix(" abc\n") == "abc"

    @pytest.mark.parametrize("bad", ["0abc", "Oops", "Il", "ab_"])
    def test_invalid_characters(self, bad):
        with pytest.raises(ValueError, match="base-58"):
            validate_base58_prefix(bad)

    def test_empty(self):
        with pytest.raises(ValueError):
            validate_base58_prefix("  ")

    def test_too_long(self):
        with pytest.raises(ValueError):
            validate_base58_prefix("a" * 45)


def test_estimate_difficulty():
    assert estimate_difficulty("a")["expected_attempts"] == 58
    assert estimate_difficulty("a")["difficulty_description"] == "Instant"
    assert estimate_difficulty("abc")["difficulty_description"] == "Minutes"
    assert estimate_difficulty("abcdefgh")["difficulty_description"].startswith("Weeks")
