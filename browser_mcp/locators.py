"""
元素定位

把选择器或文本解析为 Playwright Locator，并给出匹配结果的类型：
没有匹配、唯一匹配、多个匹配。动作执行器根据类型决定是否回退到第一个元素。
"""
from dataclasses import dataclass
from enum import Enum

from playwright.async_api import Locator


class TargetKind(str, Enum):
    SELECTOR = "selector"
    TEXT = "text"


class LocatorMatch(str, Enum):
    NOT_FOUND = "not_found"
    SINGLE = "single"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class Target:
    """元素定位方式"""
    kind: TargetKind
    value: str

    @classmethod
    def selector(cls, value: str) -> "Target":
        return cls(TargetKind.SELECTOR, value)

    @classmethod
    def text(cls, value: str) -> "Target":
        return cls(TargetKind.TEXT, value)

    def describe(self) -> str:
        if self.kind == TargetKind.TEXT:
            return f"element with text {self.value}"
        return self.value


@dataclass
class Resolution:
    """定位结果"""
    locator: Locator
    count: int

    @property
    def match(self) -> LocatorMatch:
        if self.count == 0:
            return LocatorMatch.NOT_FOUND
        if self.count == 1:
            return LocatorMatch.SINGLE
        return LocatorMatch.MULTIPLE

    @property
    def is_ambiguous(self) -> bool:
        return self.match == LocatorMatch.MULTIPLE

    def first(self) -> Locator:
        return self.locator.first


async def resolve_target(page, target: Target) -> Resolution:
    """解析定位方式；文本先精确匹配，找不到再做包含匹配"""
    if target.kind == TargetKind.TEXT:
        locator = page.get_by_text(target.value, exact=True)
        count = await locator.count()
        if count == 0:
            locator = page.get_by_text(target.value, exact=False)
            count = await locator.count()
        return Resolution(locator=locator, count=count)

    locator = page.locator(target.value)
    return Resolution(locator=locator, count=await locator.count())
