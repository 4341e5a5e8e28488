"""图形完整性检查测试。"""

from __future__ import annotations

import pytest

from apps.chartguard.contracts.layout import AxisFrame
from apps.chartguard.services.integrity import (
    bar_baseline,
    build_distortion_report,
    check_panel_scales,
    check_zero_baseline,
    compute_lie_factor,
    derive_bar_effects,
    measure_effect,
)


def _frame(data_min: float, data_max: float, padded_min: float, padded_max: float) -> AxisFrame:
    return AxisFrame(
        axis="y",
        data_min=data_min,
        data_max=data_max,
        padded_min=padded_min,
        padded_max=padded_max,
        tick_values=[data_min, data_max],
    )


@pytest.mark.parametrize(
    ("depicted", "data", "status"),
    [
        (3.0, 1.0, "violating"),
        (1.02, 1.0, "compliant"),
        (1.05, 1.0, "compliant"),
        (0.95, 1.0, "compliant"),
        (0.94, 1.0, "violating"),
    ],
)
def test_lie_factor_bounds(depicted: float, data: float, status: str) -> None:
    """谎言因子位于 [0.95, 1.05] 时合规。"""

    result = compute_lie_factor(depicted, data)
    assert result.status == status
    assert result.lie_factor == pytest.approx(depicted / data)


@pytest.mark.parametrize(("depicted", "data"), [(1.0, 0.0), (0.0, 1.0), (None, 1.0), (1.0, None)])
def test_lie_factor_indeterminate_without_effects(depicted, data) -> None:
    """任一效应缺失或为零时无法判定。"""

    result = compute_lie_factor(depicted, data)
    assert result.status == "indeterminate"
    assert result.lie_factor is None


def test_measure_effect() -> None:
    """相对变化在起点为零时无定义。"""

    assert measure_effect(10.0, 15.0) == pytest.approx(0.5)
    assert measure_effect(0.0, 5.0) is None


def test_bar_effects_from_zero_baseline_are_faithful() -> None:
    """从零起画的柱长与数据变化一致。"""

    depicted, data = derive_bar_effects([10.0, 20.0, 30.0], 0.0)
    assert depicted == pytest.approx(data)
    assert compute_lie_factor(depicted, data).status == "compliant"


def test_truncated_baseline_exaggerates_effect() -> None:
    """截断基线会放大柱长差异。"""

    frame = _frame(10.0, 20.0, 9.5, 20.5)
    baseline = bar_baseline([10.0, 20.0], frame)
    assert baseline == 9.5
    depicted, data = derive_bar_effects([10.0, 20.0], baseline)
    assert data == pytest.approx(1.0)
    assert depicted == pytest.approx(20.0)
    assert compute_lie_factor(depicted, data).status == "violating"


def test_mixed_sign_bars_cannot_derive_effects() -> None:
    """正负混合的柱形无法推导效应。"""

    assert derive_bar_effects([-5.0, 10.0], 0.0) is None
    assert derive_bar_effects([5.0], 0.0) is None


def test_zero_baseline_check() -> None:
    """柱形图范围框必须包含零。"""

    truncated = _frame(10.0, 20.0, 9.5, 20.5)
    anchored = _frame(10.0, 20.0, 0.0, 20.5)
    assert not check_zero_baseline("bar", truncated)
    assert check_zero_baseline("bar", anchored)
    assert check_zero_baseline("line", truncated)
    assert not check_zero_baseline("line", truncated, start_at_zero=True)


def test_panel_scales_must_match() -> None:
    """各面板范围框不同即视为尺度不一致。"""

    first = _frame(1.0, 10.0, 0.5, 10.5)
    second = _frame(1.0, 20.0, 0.0, 21.0)
    assert check_panel_scales([first, first, first])
    assert not check_panel_scales([first, second])
    assert check_panel_scales([])


def test_distortion_report_aggregates_checks() -> None:
    """失真报告汇总三项检查。"""

    frame = _frame(10.0, 20.0, 9.5, 20.5)
    report = build_distortion_report(
        chart_type="bar",
        value_frame=frame,
        panel_frames=[],
        effect=(3.0, 1.0),
    )
    assert report.lie_factor_status == "violating"
    assert not report.zero_baseline_respected
    assert report.scales_consistent_across_panels
    assert report.has_violation

    clean = build_distortion_report(chart_type="line", value_frame=frame, panel_frames=[], effect=None)
    assert clean.lie_factor_status == "indeterminate"
    assert not clean.has_violation
