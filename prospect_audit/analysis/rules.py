"""
Detection rule primitives.

A `Detector` is a name plus an ordered tuple of matchers. Every matcher is
evaluated (no short-circuit) so overlapping evidence all shows up as
qualified labels, e.g. ``"HubSpot Form"`` and ``"HubSpot Form (script detected)"``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Union

from prospect_audit.analysis.errors import DetectorError
from prospect_audit.analysis.logging_utils import log_event
from prospect_audit.analysis.page_context import PageContext

logger = logging.getLogger(__name__)


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern, re.IGNORECASE)


def _text_matches(
    value: str,
    *,
    needles: tuple[str, ...],
    patterns: tuple[str | re.Pattern[str], ...],
) -> bool:
    if any(needle in value for needle in needles):
        return True
    return any(_compile(pattern).search(value) for pattern in patterns)


@dataclass(frozen=True)
class SelectorRule:
    """Fires when any comma-separated CSS selector matches an element."""

    selector: str
    qualifier: str | None = None

    def matches(self, context: PageContext) -> bool:
        # Each part is tried alone so one unsupported selector cannot hide the rest.
        failures: list[Exception] = []
        for part in self.selector.split(","):
            part = part.strip()
            if not part:
                continue
            try:
                if context.has_element(part):
                    return True
            except Exception as exc:
                failures.append(exc)
        if failures:
            raise DetectorError(f"selector '{self.selector}' failed: {failures[0]}")
        return False


@dataclass(frozen=True)
class ScriptSrcRule:
    """Fires when a script source contains a needle or matches a pattern."""

    needles: tuple[str, ...] = ()
    patterns: tuple[str | re.Pattern[str], ...] = ()
    qualifier: str | None = "script detected"

    def matches(self, context: PageContext) -> bool:
        return any(
            _text_matches(source, needles=self.needles, patterns=self.patterns)
            for source in context.script_sources()
        )


@dataclass(frozen=True)
class InlineScriptRule:
    """Fires when inline script content matches a pattern."""

    pattern: str | re.Pattern[str]
    qualifier: str | None = "JS pattern detected"

    def matches(self, context: PageContext) -> bool:
        compiled = _compile(self.pattern)
        return any(
            script.content and compiled.search(script.content)
            for script in context.scripts
        )


@dataclass(frozen=True)
class GlobalSymbolRule:
    """
    Fires on a captured global binding.

    `mode` is ``"truthy"`` (``window[x]`` is truthy), ``"defined"`` (the
    dotted path exists, whatever its value) or ``"function"``.
    """

    path: str
    qualifier: str | None = "JS Object"
    mode: str = "truthy"

    def matches(self, context: PageContext) -> bool:
        if self.mode == "defined":
            return context.has_global(self.path)
        if self.mode == "function":
            return context.global_is_function(self.path)
        if self.mode == "truthy":
            return context.global_truthy(self.path)
        raise DetectorError(f"unknown global rule mode '{self.mode}'")


@dataclass(frozen=True)
class AttributeRule:
    """Fires when any element carries the attribute."""

    attribute: str
    qualifier: str | None = "Data Attribute"

    def matches(self, context: PageContext) -> bool:
        return context.has_element(f"[{self.attribute}]")


@dataclass(frozen=True)
class IframeSrcRule:
    """Fires when an iframe source contains a needle or matches a pattern."""

    needles: tuple[str, ...] = ()
    patterns: tuple[str | re.Pattern[str], ...] = ()
    qualifier: str | None = "iframe detected"

    def matches(self, context: PageContext) -> bool:
        return any(
            _text_matches(source, needles=self.needles, patterns=self.patterns)
            for source in context.iframe_sources()
        )


@dataclass(frozen=True)
class AnyMatch:
    """Composite matcher: fires if any child fires. Child errors are tolerated."""

    rules: tuple["Matcher", ...]
    qualifier: str | None = None

    def matches(self, context: PageContext) -> bool:
        for rule in self.rules:
            if _safe_match(rule, context, detector=type(self).__name__):
                return True
        return False


Matcher = Union[
    SelectorRule,
    ScriptSrcRule,
    InlineScriptRule,
    GlobalSymbolRule,
    AttributeRule,
    IframeSrcRule,
    AnyMatch,
]


def _safe_match(matcher: Matcher, context: PageContext, *, detector: str) -> bool:
    try:
        return bool(matcher.matches(context))
    except Exception as exc:
        log_event(
            logger,
            logging.DEBUG,
            "detector_matcher_failed",
            detector=detector,
            matcher=type(matcher).__name__,
            error_kind=DetectorError.kind,
            error=str(exc),
            page_url=context.url,
        )
        return False


def qualified_label(name: str, qualifier: str | None) -> str:
    return f"{name} ({qualifier})" if qualifier else name


@dataclass(frozen=True)
class Detector:
    """
    Named heuristic made of matchers combined with any-match semantics.
    """

    name: str
    matchers: tuple[Matcher, ...]

    def evaluate(self, context: PageContext) -> tuple[str, ...]:
        """
        Return one label per firing matcher, deduplicated, in matcher order.
        """

        labels: dict[str, None] = {}
        for matcher in self.matchers:
            if _safe_match(matcher, context, detector=self.name):
                labels.setdefault(qualified_label(self.name, matcher.qualifier), None)
        return tuple(labels)

    def matches(self, context: PageContext) -> bool:
        return any(
            _safe_match(matcher, context, detector=self.name)
            for matcher in self.matchers
        )


@dataclass(frozen=True)
class FallbackRule:
    """
    Generic sentinel emitted only after the specific detectors ran.

    `label` builds zero or more sentinel labels from the context when the
    anchor holds; `suppressed_by` decides whether peer labels already cover it.
    """

    anchor: Callable[[PageContext], bool]
    label: Callable[[PageContext], Iterable[str]]
    suppressed_by: Callable[[str], bool] = lambda _label: True

    def evaluate(self, context: PageContext, found: Iterable[str]) -> tuple[str, ...]:
        if any(self.suppressed_by(label) for label in found):
            return ()
        try:
            if not self.anchor(context):
                return ()
            return tuple(self.label(context))
        except Exception as exc:
            log_event(
                logger,
                logging.DEBUG,
                "detector_fallback_failed",
                error_kind=DetectorError.kind,
                error=str(exc),
                page_url=context.url,
            )
            return ()


@dataclass(frozen=True)
class DetectorFamily:
    """
    Specific detectors plus optional fallbacks evaluated in a second pass.
    """

    name: str
    detectors: tuple[Detector, ...]
    fallbacks: tuple[FallbackRule, ...] = ()
    postprocess: Callable[[PageContext, tuple[str, ...]], tuple[str, ...]] | None = None

    def evaluate(self, context: PageContext) -> tuple[str, ...]:
        found: dict[str, None] = {}
        for detector in self.detectors:
            for label in detector.evaluate(context):
                found.setdefault(label, None)
        for fallback in self.fallbacks:
            for label in fallback.evaluate(context, tuple(found)):
                found.setdefault(label, None)
        labels = tuple(found)
        if self.postprocess is not None:
            labels = self.postprocess(context, labels)
        return labels
