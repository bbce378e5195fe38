"""
配件选择模块 - Part Selection Module

按固定类别顺序进行深度优先回溯搜索，组装一套配置。
Depth-first backtracking search over the fixed category order, assembling
one configuration from preferred parts and candidate pools.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

from ..schemas import (
    BUILD_ORDER,
    REQUIRED_CATEGORIES,
    CandidatePool,
    Category,
    Configuration,
    Part,
    PreferredParts,
)

if TYPE_CHECKING:
    from .compatibility import CompatibilityChecker

logger = logging.getLogger(__name__)


class _StepBudgetExhausted(Exception):
    pass


@dataclass
class _Search:
    configuration: Configuration
    order: List[Category]
    candidates: Dict[Category, List[Part]]
    skip_graph: bool
    max_steps: int
    steps: int = 0
    best_depth: int = -1
    best: Optional[Configuration] = None
    gaps: List[Category] = field(default_factory=list)

    def tick(self) -> None:
        self.steps += 1
        if self.steps > self.max_steps:
            raise _StepBudgetExhausted()

    def remember(self, depth: int) -> None:
        if depth > self.best_depth:
            self.best_depth = depth
            self.best = self.configuration.clone()


class ConfigurationBuilder:
    """
    配置构建器 - Configuration Builder

    搜索策略 Search Strategy:
    1. 每个类别的候选列表 = 首选配件 + 候选池（首选配件优先）
       Candidates per category are preferred parts followed by the pool
    2. 第一个通过兼容性检查的候选即被采用，深层失败则回溯
       First fit wins; undo and try the next candidate when deeper levels fail
    3. 若某个必需类别没有候选通过检查，强制采用第一个候选并继续
       If nothing passes for a required category, force the first candidate
    4. 完全没有候选的类别留空，其余类别照常搜索，结果为不完整配置
       Categories with no candidates at all stay empty; the rest is still searched
    """

    def __init__(
        self,
        checker: "CompatibilityChecker",
        max_steps: int = 50_000,
        order: Sequence[Category] = BUILD_ORDER,
    ):
        self.checker = checker
        self.max_steps = max_steps
        self.order = list(order)

    async def build(
        self,
        preferred: PreferredParts,
        pool: CandidatePool,
        start: Optional[Configuration] = None,
        skip_graph: bool = False,
    ) -> Configuration:
        """
        构建配置 - Build Configuration

        参数 Parameters:
            preferred: 用户指定的配件，按类别分组
                       Parts the user asked for, by category
            pool: 按预算过滤并排序的候选池
                  Budget-filtered, ordered candidate pool
            start: 上一轮的部分配置，作为搜索起点
                   Partial configuration carried over from a previous attempt
            skip_graph: 跳过图谱检查（仅用于预览）
                        Skip graph lookups, for previews only

        返回 Returns:
            尽力而为的配置，可能不完整
            Best-effort configuration, possibly incomplete
        """
        configuration = start.clone() if start is not None else Configuration()
        candidates = {
            category: list(preferred.get(category, [])) + list(pool.get(category, []))
            for category in self.order
        }
        # 无候选的类别直接跳过而非让分支失败，其余类别照常填充，结果标记为不完整
        # empty categories are left out of the search order so the rest still gets filled
        gaps = [category for category in self.order if not candidates[category]]
        search = _Search(
            configuration=configuration,
            order=[category for category in self.order if candidates[category]],
            candidates=candidates,
            skip_graph=skip_graph,
            max_steps=self.max_steps,
            gaps=gaps,
        )
        if gaps:
            logger.debug("[BUILD] no candidates for %s", [c.value for c in gaps])

        try:
            found = await self._search(search, 0)
        except _StepBudgetExhausted:
            logger.warning("[BUILD] search stopped after %d compatibility checks", search.steps)
            found = False

        if found:
            result = search.configuration
        else:
            result = search.best if search.best is not None else search.configuration
        logger.debug(
            "[BUILD] %s after %d checks, missing=%s forced=%s",
            "complete" if result.is_complete() else "partial",
            search.steps,
            [c.value for c in result.missing()],
            [c.value for c in result.forced],
        )
        return result

    async def _search(self, search: _Search, index: int) -> bool:
        search.remember(index)
        if index >= len(search.order):
            return True

        configuration = search.configuration
        category = search.order[index]
        candidates = search.candidates[category]
        previous = configuration.get(category)
        previous_forced = category in configuration.forced

        candidate_found = False
        for candidate in candidates:
            search.tick()
            if await self.checker.is_compatible(candidate, category, configuration, search.skip_graph):
                candidate_found = True
                configuration.assign(category, candidate)
                if await self._search(search, index + 1):
                    return True
                self._restore(configuration, category, previous, previous_forced)

        # 回退：没有候选通过检查时强制采用第一个 - fallback to the first candidate
        if not candidate_found and category in REQUIRED_CATEGORIES:
            configuration.assign(category, candidates[0], forced=True)
            if await self._search(search, index + 1):
                return True
            self._restore(configuration, category, previous, previous_forced)

        return False

    @staticmethod
    def _restore(
        configuration: Configuration,
        category: Category,
        previous: Optional[Part],
        previous_forced: bool,
    ) -> None:
        if previous is None:
            configuration.unassign(category)
        else:
            configuration.assign(category, previous, forced=previous_forced)
