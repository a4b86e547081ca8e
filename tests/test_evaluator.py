import pytest

from plan_gate.catalog import DEFAULT_PROMPT_ID, default_catalogs
from plan_gate.evaluator import FEATURE_NOT_FOUND, REQUIRES_PAID_PLAN, AccessEvaluator, StaticState
from plan_gate.models import EntitlementState, UsageState

from fakes import pro_state


def _evaluator(entitlement=None, articles=0, images=0):
    state = StaticState(
        entitlement=entitlement or EntitlementState.fallback(),
        usage=UsageState(total_articles=articles, monthly_images_used=images),
    )
    return AccessEvaluator(default_catalogs(), state)


# =============================================================================
# Unknown features
# =============================================================================


@pytest.mark.parametrize("feature_id", ["nonexistent", "", "   ", "UNLIMITED-ARTICLES"])
def test_unknown_feature_is_denied_without_prompt(feature_id):
    evaluator = _evaluator(entitlement=pro_state())

    decision = evaluator.check_access(feature_id)

    assert evaluator.has_feature(feature_id) is False
    assert evaluator.limit_for(feature_id) == 0
    assert decision.granted is False
    assert decision.reason == FEATURE_NOT_FOUND
    assert decision.prompt_id is None


# =============================================================================
# Pro users
# =============================================================================


def test_pro_user_is_granted_every_feature_regardless_of_usage():
    evaluator = _evaluator(entitlement=pro_state(), articles=10_000, images=10_000)

    for feature in default_catalogs().features:
        assert evaluator.check_access(feature.id).granted is True, feature.id


def test_pro_flag_is_trusted_even_when_expired_flag_is_set():
    """Server-reported flags are used verbatim; expiry is not re-derived locally."""
    evaluator = _evaluator(entitlement=pro_state(is_expired=True))

    assert evaluator.check_access("zhihu-platform").granted is True
    assert evaluator.has_feature("zhihu-platform") is True


def test_pro_limits():
    evaluator = _evaluator(entitlement=pro_state())

    assert evaluator.limit_for("unlimited-articles") == -1
    assert evaluator.limit_for("cloud-images") == 100
    assert evaluator.limit_for("zhihu-platform") == 0


# =============================================================================
# Free tier: metered features
# =============================================================================


def test_article_limit_reached_denies_with_article_prompt():
    decision = _evaluator(articles=5).check_access("unlimited-articles")

    assert decision.granted is False
    assert decision.prompt_id == "article-limit"
    assert "5" in decision.reason


def test_article_below_limit_is_granted():
    decision = _evaluator(articles=4).check_access("unlimited-articles")

    assert decision.granted is True
    assert decision.prompt_id is None


def test_image_limit_message_embeds_count_and_limit():
    decision = _evaluator(images=23).check_access("cloud-images")

    assert decision.granted is False
    assert decision.prompt_id == "cloud-images-limit"
    assert "23/20" in decision.reason


def test_counters_are_not_cross_wired():
    """Article usage must not affect the image quota and vice versa."""
    evaluator = _evaluator(articles=100, images=0)

    assert evaluator.check_access("cloud-images").granted is True
    assert evaluator.check_access("unlimited-articles").granted is False


def test_free_limits():
    evaluator = _evaluator()

    assert evaluator.limit_for("unlimited-articles") == 5
    assert evaluator.limit_for("cloud-images") == 20
    assert evaluator.limit_for("advanced-styles") == 0


# =============================================================================
# Free tier: pro-exclusive features
# =============================================================================


def test_pro_exclusive_feature_uses_first_advertising_prompt():
    evaluator = _evaluator()

    styles = evaluator.check_access("advanced-styles")
    presets = evaluator.check_access("publish-presets")
    zhihu = evaluator.check_access("zhihu-platform")

    assert styles.granted is False
    assert styles.reason == REQUIRES_PAID_PLAN
    # 'article-limit' is declared before 'style-locked' and also advertises advanced-styles
    assert styles.prompt_id == "article-limit"
    assert presets.prompt_id == "preset-locked"
    assert zhihu.prompt_id == "platform-locked"


def test_pro_exclusive_feature_without_advertising_prompt_uses_default():
    decision = _evaluator().check_access("douyin-platform")

    assert decision.granted is False
    assert decision.prompt_id == DEFAULT_PROMPT_ID


def test_has_feature_on_free_plan():
    evaluator = _evaluator()

    assert evaluator.has_feature("unlimited-articles") is True
    assert evaluator.has_feature("cloud-images") is True
    assert evaluator.has_feature("advanced-styles") is False


def test_has_feature_pro_exclusive_follows_is_pro_not_plan():
    inconsistent = EntitlementState(plan="pro", expires_at=None, is_pro=False, is_expired=True)
    evaluator = _evaluator(entitlement=inconsistent)

    assert evaluator.has_feature("advanced-styles") is False
    assert evaluator.has_feature("unlimited-articles") is True


def test_evaluation_reads_live_state():
    class MutableSource:
        def __init__(self):
            self.entitlement = EntitlementState.fallback()
            self.usage = UsageState.fallback()

    source = MutableSource()
    evaluator = AccessEvaluator(default_catalogs(), source)
    assert evaluator.check_access("advanced-styles").granted is False

    source.entitlement = pro_state()
    assert evaluator.check_access("advanced-styles").granted is True
