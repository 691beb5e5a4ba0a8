import pytest

from answer_matcher import is_match, normalize_answer


class TestNormalizeAnswer:
    def test_lowercases_and_trims(self):
        assert normalize_answer("  Bodyslam  ") == "bodyslam"

    def test_collapses_whitespace(self):
        assert normalize_answer("Bedroom \t  Audio") == "bedroom audio"

    def test_strips_punctuation(self):
        assert normalize_answer("Bodyslam!!") == "bodyslam"
        assert normalize_answer("(Love) = {song}; #1~") == "love  song 1"

    def test_whitespace_collapsed_before_punctuation_removed(self):
        assert normalize_answer("a - b") == "a  b"

    def test_keeps_characters_outside_the_punctuation_set(self):
        assert normalize_answer("Don't Stop") == "don't stop"
        assert normalize_answer("ใจความสำคัญ") == "ใจความสำคัญ"

    def test_empty(self):
        assert normalize_answer("") == ""
        assert normalize_answer(None) == ""


class TestIsMatch:
    @pytest.mark.parametrize("guess,target", [
        ("scrubb", "Scrubb"),
        ("Bodyslam", "bodyslam!!"),
        ("คิดถึง", "คิดถึง"),
        ("  bedroom   audio ", "Bedroom Audio"),
        ("Labanoo", "Labanoon"),
        ("Labanoon!", "Labanoon"),
        ("เรือเล็กควรออกจากฝั่ง", "เรือเล็กควรออกจากฝั่งนะ"),
    ])
    def test_matches(self, guess, target):
        assert is_match(guess, target)

    @pytest.mark.parametrize("guess,target", [
        ("คิด", "คิดถึง"),
        ("Body", "Bodyslam"),
        ("Bodyslam band", "Bodyslam"),
        ("Palmy", "Paradox"),
    ])
    def test_rejects(self, guess, target):
        assert not is_match(guess, target)

    def test_empty_guess_never_matches(self):
        assert not is_match("", "Scrubb")
        assert not is_match("   ", "Scrubb")
        assert not is_match(None, "Scrubb")

    def test_punctuation_only_never_matches(self):
        assert not is_match("!!!", "!!!")
        assert not is_match("...", "Scrubb")

    def test_empty_target_never_matches(self):
        assert not is_match("Scrubb", "")

    def test_symmetric(self):
        pairs = [("Labanoo", "Labanoon"), ("คิด", "คิดถึง"), ("palmy", "Palmy")]
        for a, b in pairs:
            assert is_match(a, b) == is_match(b, a)

    def test_ratio_boundary(self):
        # 7 of 10 characters is exactly the threshold
        assert is_match("abcdefg", "abcdefghij")
        assert not is_match("abcdef", "abcdefghij")
