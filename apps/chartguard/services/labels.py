"""一维标签避让：保持名次顺序，相邻标签至少间隔 min_gap。"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple

from apps.chartguard.contracts.layout import LabelPlacement, PlacedLabel

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabelAnchor:
    """待避让的标签锚点。"""

    entity_id: str
    text: str
    value: float


def resolve_label_positions(
    anchors: Sequence[LabelAnchor],
    min_gap: float,
    *,
    side: Literal["left", "right", "end"] = "end",
    extent: Optional[Tuple[float, float]] = None,
) -> LabelPlacement:
    """按贪心前推解析标签位置。

    按数值升序（数值相同则按输入顺序）依次放置，每个标签的位置取
    ``max(原始值, 前一标签位置 + min_gap)``。结果单调不减且尽量贴近原始值。

    Parameters
    ----------
    anchors: Sequence[LabelAnchor]
        待避让的锚点，至少一个。
    min_gap: float
        相邻标签的最小间距，必须为正数。
    side: Literal["left", "right", "end"]
        标签所在侧；斜率图左右两列需分别解析。
    extent: Optional[Tuple[float, float]]
        名义坐标范围。若最终位置超出上界则标记 overflow，但结果仍然有效。

    Returns
    -------
    LabelPlacement
        按数值升序排列的标签位置。
    """

    if min_gap <= 0:
        raise ValueError("min_gap 必须为正数。")
    if not anchors:
        raise ValueError("至少需要一个标签锚点。")
    entity_ids = [anchor.entity_id for anchor in anchors]
    if len(entity_ids) != len(set(entity_ids)):
        raise ValueError("同一侧的标签 entity_id 不能重复。")
    # sorted 为稳定排序，数值相同的实体保持输入顺序。
    ordered = sorted(anchors, key=lambda anchor: anchor.value)
    placed: List[PlacedLabel] = []
    previous: Optional[float] = None
    for anchor in ordered:
        position = anchor.value
        if previous is not None:
            position = max(anchor.value, previous + min_gap)
        placed.append(
            PlacedLabel(
                entity_id=anchor.entity_id,
                text=anchor.text,
                raw_value=anchor.value,
                position=position,
            ),
        )
        previous = position
    overflow = False
    if extent is not None:
        lower, upper = extent
        if lower > upper:
            raise ValueError("extent 下界不能大于上界。")
        overflow = placed[-1].position > upper
    if overflow:
        LOGGER.warning(
            "标签避让超出名义范围",
            extra={
                "side": side,
                "label_count": len(placed),
                "min_gap": min_gap,
            },
        )
    return LabelPlacement(side=side, min_gap=min_gap, labels=placed, overflow=overflow)
