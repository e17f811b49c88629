"""Built-in vertical compliance packs and their registry.

The medical pack targets Korean medical-advertising rules: guaranteed cures,
"no side effects" claims, superlatives and fixed treatment durations.  The
finance pack covers guaranteed-return and principal-protection claims.
"""

from __future__ import annotations

import logging

from ambassador.compliance.models import Severity
from ambassador.compliance.rules import PatternRule, PhraseRule, RuleSet

logger = logging.getLogger(__name__)

MEDICAL_PROHIBITED_PHRASES = (
    "100% 완치",
    "100% 치료",
    "완치 보장",
    "부작용 없음",
    "부작용 전혀 없음",
    "효과 보장",
    "반드시 효과",
    "무조건 좋아",
    "최고의 치료",
    "유일한 치료",
    "기적의 치료",
    "절대 안전",
    "완벽한 치료",
    "즉시 완치",
    "당일 완치",
    "확실한 효과",
    "100% 효과",
)

MEDICAL_SUGGESTIONS = (
    '치료 효과 대신 "증상 개선에 도움을 드립니다" 등의 표현을 사용하세요.',
    '절대적 표현 대신 "대부분의 경우", "일반적으로" 등의 완화된 표현을 사용하세요.',
    "개인별 치료 효과가 다를 수 있음을 명시하세요.",
    "의학적 근거나 연구 결과를 인용할 때는 출처를 명확히 하세요.",
)

MEDICAL_RULE_SET = RuleSet(
    name="medical",
    rules=(
        PhraseRule(
            phrases=MEDICAL_PROHIBITED_PHRASES,
            reason_template='"{phrase}"는 의료법에서 금지하는 표현입니다.',
        ),
        PatternRule.compile(
            r"\d+%\s*(완치|치료|효과|개선)",
            "치료 효과를 수치로 보장하는 표현은 의료법 위반입니다.",
            Severity.HIGH,
        ),
        PatternRule.compile(
            r"(절대|반드시|무조건|확실히|100%)\s*(낫|치료|완치|효과)",
            "절대적 표현을 사용한 치료 효과 보장은 금지됩니다.",
            Severity.HIGH,
        ),
        PatternRule.compile(
            r"(부작용|副作用)\s*(없|zero|제로|전혀)",
            "부작용이 없다는 단정적 표현은 사용할 수 없습니다.",
            Severity.HIGH,
            ignore_case=True,
        ),
        PatternRule.compile(
            r"(최고|최상|최고급|넘버원|1등|1위)\s*(병원|한의원|의원|클리닉|치료)",
            "비교 우위를 나타내는 최상급 표현은 제한됩니다.",
            Severity.MEDIUM,
            ignore_case=True,
        ),
        PatternRule.compile(
            r"(유일|독점|오직|only)\s*(치료|기술|방법)",
            "유일성을 주장하는 표현은 주의가 필요합니다.",
            Severity.MEDIUM,
            ignore_case=True,
        ),
        PatternRule.compile(
            r"(\d+일|당일|즉시|바로)\s*(완치|치료)",
            "치료 기간을 단정적으로 명시하는 표현은 위험합니다.",
            Severity.HIGH,
        ),
        PatternRule.compile(
            r"(기적|신비|놀라운|획기적)\s*(효과|치료|결과)",
            "과장된 효과 표현은 자제해야 합니다.",
            Severity.MEDIUM,
            ignore_case=True,
        ),
    ),
    suggestions=MEDICAL_SUGGESTIONS,
)

FINANCE_RULE_SET = RuleSet(
    name="finance",
    rules=(
        PhraseRule(
            phrases=("원금 보장", "수익 보장", "손실 없음", "무위험 투자"),
            reason_template='"{phrase}"는 금융소비자보호법상 금지되는 단정적 표현입니다.',
        ),
        PatternRule.compile(
            r"(연|월)\s*\d+(\.\d+)?%\s*(확정|보장)",
            "수익률을 확정적으로 제시하는 표현은 금지됩니다.",
            Severity.HIGH,
        ),
        PatternRule.compile(
            r"(반드시|무조건|확실히)\s*(수익|오릅|상승)",
            "투자 성과를 단정하는 표현은 사용할 수 없습니다.",
            Severity.HIGH,
        ),
        PatternRule.compile(
            r"(대박|급등)\s*(종목|확정)",
            "과장된 투자 권유 표현은 자제해야 합니다.",
            Severity.MEDIUM,
        ),
    ),
    suggestions=(
        "과거 수익률이 미래 수익을 보장하지 않음을 명시하세요.",
        "투자 위험과 원금 손실 가능성을 함께 안내하세요.",
    ),
)

_REGISTRY: dict[str, RuleSet] = {
    MEDICAL_RULE_SET.name: MEDICAL_RULE_SET,
    FINANCE_RULE_SET.name: FINANCE_RULE_SET,
}


def available_rule_sets() -> list[str]:
    """List the names of all registered packs."""
    return sorted(_REGISTRY)


def get_rule_set(name: str) -> RuleSet:
    """Look up a registered pack by name.

    Raises:
        KeyError: If no pack is registered under ``name``.
    """
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown rule set {name!r}; available: {available_rule_sets()}") from None


def register_rule_set(rule_set: RuleSet) -> None:
    """Register (or replace) a pack so it can be selected by name."""
    if rule_set.name in _REGISTRY:
        logger.info("Replacing registered rule set %s", rule_set.name)
    _REGISTRY[rule_set.name] = rule_set
