"""
Validation preset catalog / 検証プリセットカタログ

Static scene-type presets whose rules replace the placeholder
``plot_advancement`` rule when ``--preset`` is given.
"""

from typing import Dict, List

from pydantic import BaseModel

from storyteller.exceptions import ErrorCode, StorytellerError
from storyteller.schemas.meta import ValidationRule


class Preset(BaseModel):
    type: str
    validations: List[ValidationRule]


class UnknownPresetError(StorytellerError):
    code = ErrorCode.UNKNOWN_PRESET


def _plot_rule(body: str, message: str) -> ValidationRule:
    return ValidationRule(
        type="plot_advancement",
        validate=f"(content: string) => {{\n{body}\n        }}",
        message=message,
    )


PRESETS: Dict[str, Preset] = {
    "battle-scene": Preset(
        type="battle-scene",
        validations=[
            _plot_rule(
                '          const hasBattle = content.includes("戦") || content.includes("戦い") || content.includes("剣");\n'
                "          return hasBattle;",
                "戦闘シーンの要素（戦い/剣など）が不足しています",
            )
        ],
    ),
    "romance-scene": Preset(
        type="romance-scene",
        validations=[
            _plot_rule(
                '          const hasRomance = content.includes("恋") || content.includes("愛") || content.includes("想い");\n'
                "          return hasRomance;",
                "恋愛シーンの要素（恋/愛など）が不足しています",
            )
        ],
    ),
    "dialogue": Preset(
        type="dialogue",
        validations=[
            _plot_rule(
                '          const hasDialogue = content.includes("「") && content.includes("」");\n'
                "          return hasDialogue;",
                "会話シーンの要素（「...」）が不足しています",
            )
        ],
    ),
    "exposition": Preset(
        type="exposition",
        validations=[
            _plot_rule(
                "          // TODO: 説明・導入シーン向けの検証を追加してください\n"
                "          return true;",
                "導入（説明）シーンの検証を追加してください",
            )
        ],
    ),
}


def preset_names() -> List[str]:
    return sorted(PRESETS)


def get_preset(name: str) -> Preset:
    """Look up a preset by scene type.

    Raises:
        UnknownPresetError: when *name* is not in the catalog.
    """
    preset = PRESETS.get(name)
    if preset is None:
        raise UnknownPresetError(
            f"Invalid preset: {name} (expected one of: {', '.join(preset_names())})"
        )
    return preset
