"""
Validation rule generation.
"""

import json
from typing import List

from storyteller.schemas.meta import DetectedEntityRef, DetectionResult, ValidationRule
from storyteller.utils.text import dedupe

PLOT_ADVANCEMENT = "plot_advancement"


class ValidationGenerator:
    """Derive presence rules from detected entities plus editable placeholders."""

    def generate(self, detected: DetectionResult) -> List[ValidationRule]:
        rules: List[ValidationRule] = []
        for character in detected.characters:
            rules.append(self._presence_rule("character_presence", character, "キャラクター"))
        for setting in detected.settings:
            rules.append(self._presence_rule("setting_consistency", setting, "設定"))

        rules.append(
            ValidationRule(
                type=PLOT_ADVANCEMENT,
                validate=(
                    "(content: string) => {\n"
                    "        // TODO: プロット進行の検証ルールを追加してください\n"
                    "        return true;\n"
                    "      }"
                ),
                message="TODO: 重要なプロットポイントが不足しています",
            )
        )
        rules.append(
            ValidationRule(
                type="custom",
                validate=(
                    "(content: string) => {\n"
                    "        // TODO: カスタム検証ルールを追加してください\n"
                    "        return true;\n"
                    "      }"
                ),
                message="TODO: カスタム検証ルールを追加してください",
            )
        )
        return rules

    @staticmethod
    def _presence_rule(rule_type: str, entity: DetectedEntityRef, label: str) -> ValidationRule:
        patterns = dedupe(entity.matched_patterns) or [entity.id]
        checks = " || ".join(
            f"content.includes({json.dumps(pattern, ensure_ascii=False)})" for pattern in patterns
        )
        return ValidationRule(
            type=rule_type,
            validate=f"(content: string) => {checks}",
            message=f"{label}（{entity.id}）が章内に登場していません",
        )
