"""Tests for the sentiment classifier and the SLA calculator."""

import pytest

from casedesk.sla.domain import TriageConfig, analyze, compute_sla


# ============================================================================
# Sentiment
# ============================================================================

class TestSentiment:

    def test_polite_patience_is_cool(self):
        result = analyze("please, no hurry")
        assert result.label == "cool"
        assert result.score == pytest.approx(0.8)

    def test_abuse_with_shouting_is_angry(self):
        result = analyze("this is a scam, fraud, terrible!!!")
        assert result.label == "angry"
        assert result.score == -1.0

    def test_single_ok_stays_neutral(self):
        result = analyze("ok")
        assert result.label == "neutral"
        assert result.score == pytest.approx(0.4)

    def test_empty_text_is_neutral(self):
        assert analyze("").label == "neutral"
        assert analyze(None).score == 0.0

    def test_repeated_term_counts_once(self):
        assert analyze("please please please").score == pytest.approx(0.4)

    def test_terms_match_whole_words_only(self):
        # "mad" inside "made" and "ok" inside "book" do not count
        assert analyze("I made a booking").score == 0.0

    def test_thank_covers_inflections(self):
        assert analyze("Thankful for the help").score == pytest.approx(0.4)
        assert analyze("thanks").score == pytest.approx(0.4)

    def test_emoticons_shift_score(self):
        assert analyze(":)").score == pytest.approx(0.3)
        assert analyze(":(").score == pytest.approx(-0.3)

    def test_score_is_clamped(self):
        calm = "please thank you, could you, may i, no hurry, whenever, take your time, ok, cool, fine"
        assert analyze(calm).score == 1.0


# ============================================================================
# SLA
# ============================================================================

class TestComputeSLA:

    def test_high_priority_neutral_is_express(self):
        target = compute_sla("high", "neutral")
        assert (target.level, target.target_minutes) == ("express", 15)

    def test_low_priority_cool_is_batched(self):
        target = compute_sla("low", "cool")
        assert (target.level, target.target_minutes) == ("batched", 180)

    def test_low_priority_neutral_is_standard(self):
        target = compute_sla("low", "neutral")
        assert (target.level, target.target_minutes) == ("standard", 60)

    def test_angry_wins_over_everything(self):
        assert compute_sla("low", "angry").level == "express"

    def test_high_priority_beats_cool(self):
        assert compute_sla("high", "cool").level == "express"

    def test_defaults_to_low_and_neutral(self):
        assert compute_sla().level == "standard"

    def test_to_dict_uses_camel_case(self):
        assert compute_sla("high", "neutral").to_dict() == {"level": "express", "targetMinutes": 15}

    def test_config_targets_override_minutes(self):
        config = TriageConfig(sla_targets={"express": 5})
        assert config.compute_sla("high", "neutral").target_minutes == 5
        assert config.compute_sla("low", "neutral").target_minutes == 60

    def test_unknown_sla_level_rejected(self):
        with pytest.raises(ValueError):
            TriageConfig(sla_targets={"urgent": 5})
