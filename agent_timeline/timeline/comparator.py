"""Diff and cost comparison of an original response against its replay.

The text diff is built with ``difflib``: ``SequenceMatcher`` over word and
whitespace tokens gives ordered equal/insert/delete/replace chunks and a
similarity ratio, and ``unified_diff`` gives a line-level patch. Both are total:
any two strings, empty ones included, produce a result.
"""

from __future__ import annotations

import difflib
import re
from typing import List, Optional, Sequence, Tuple

from .errors import ValidationError
from .schemas.comparison import BatchComparison, ComparisonResult, DiffChunk, DiffOp, TextDiff
from .schemas.replay import ReplayResult, ResponseSnapshot

_TOKEN = re.compile(r"\S+|\s+")

TOKEN_DELTA_THRESHOLD = 100


def _tokens(text: str) -> List[str]:
    return _TOKEN.findall(text)


def diff_text(original: str, replayed: str) -> TextDiff:
    """Word-level chunks, unified line diff and similarity of two strings."""
    original_tokens = _tokens(original)
    replayed_tokens = _tokens(replayed)
    matcher = difflib.SequenceMatcher(None, original_tokens, replayed_tokens, autojunk=False)

    chunks = [
        DiffChunk(
            op=DiffOp(tag),
            original="".join(original_tokens[i1:i2]),
            replayed="".join(replayed_tokens[j1:j2]),
        )
        for tag, i1, i2, j1, j2 in matcher.get_opcodes()
    ]

    words = difflib.SequenceMatcher(None, original.split(), replayed.split(), autojunk=False)
    unified = "\n".join(
        difflib.unified_diff(
            original.splitlines(),
            replayed.splitlines(),
            fromfile="original",
            tofile="replayed",
            lineterm="",
        )
    )
    return TextDiff(chunks=chunks, unified=unified, similarity=words.ratio())


def cost_per_thousand_tokens(snapshot: ResponseSnapshot) -> Optional[float]:
    if snapshot.total_tokens == 0:
        return None
    return snapshot.cost / snapshot.total_tokens * 1000


def _recommendations(original: ResponseSnapshot, replayed: ResponseSnapshot, savings: float, percent: Optional[float]) -> List[str]:
    recommendations: List[str] = []

    if savings > 0:
        share = f" ({percent:.1f}%)" if percent is not None else ""
        recommendations.append(f"Using {replayed.model} saves ${savings:.4f}{share} per call")
    elif savings < 0:
        recommendations.append(f"{replayed.model} costs ${-savings:.4f} more per call than {original.model}")
    else:
        recommendations.append("Costs are identical")

    token_delta = replayed.total_tokens - original.total_tokens
    if token_delta < -TOKEN_DELTA_THRESHOLD:
        recommendations.append(f"{replayed.model} uses {-token_delta} fewer tokens")
    elif token_delta > TOKEN_DELTA_THRESHOLD:
        recommendations.append(f"{replayed.model} uses {token_delta} more tokens (more verbose)")

    if original.completion_tokens > 0:
        if replayed.completion_tokens < original.completion_tokens * 0.5:
            recommendations.append("Replayed output is less than half as long; check that it is complete")
        elif replayed.completion_tokens > original.completion_tokens * 2:
            recommendations.append("Replayed output is more than twice as long; consider a max_tokens limit")

    original_model = original.model.lower()
    replayed_model = replayed.model.lower()
    if savings > 0:
        if "opus" in original_model and "sonnet" in replayed_model:
            recommendations.append("Opus to Sonnet saved money; consider Sonnet as the default for this step")
        elif "sonnet" in original_model and "haiku" in replayed_model:
            recommendations.append("Sonnet to Haiku saved money; consider Haiku for simple steps")
    if "gemini" in replayed_model and "flash" in replayed_model:
        recommendations.append("Gemini Flash is priced at zero; verify quality before moving high-volume steps")

    return recommendations


def compare(original: ResponseSnapshot, replayed: ResponseSnapshot) -> ComparisonResult:
    """Cost, token and text comparison of ``original`` against ``replayed``."""
    savings = original.cost - replayed.cost
    percent = savings / original.cost * 100 if original.cost != 0 else None
    return ComparisonResult(
        original_model=original.model,
        replayed_model=replayed.model,
        original_cost=original.cost,
        replayed_cost=replayed.cost,
        cost_savings=savings,
        cost_savings_percent=percent,
        original_cost_per_thousand_tokens=cost_per_thousand_tokens(original),
        replayed_cost_per_thousand_tokens=cost_per_thousand_tokens(replayed),
        prompt_token_delta=replayed.prompt_tokens - original.prompt_tokens,
        completion_token_delta=replayed.completion_tokens - original.completion_tokens,
        token_delta=replayed.total_tokens - original.total_tokens,
        diff=diff_text(original.content, replayed.content),
        recommendations=_recommendations(original, replayed, savings, percent),
    )


def compare_replay(result: ReplayResult) -> ComparisonResult:
    if result.original_response is None or result.replayed_response is None:
        raise ValidationError("Replay result needs both an original and a replayed response to compare")
    return compare(result.original_response, result.replayed_response)


def batch_compare(pairs: Sequence[Tuple[ResponseSnapshot, ResponseSnapshot]]) -> BatchComparison:
    """Compare several (original, replayed) pairs and summarise the totals."""
    comparisons = [compare(original, replayed) for original, replayed in pairs]
    if not comparisons:
        return BatchComparison()

    percents = [c.cost_savings_percent for c in comparisons if c.cost_savings_percent is not None]
    savings = [c.cost_savings for c in comparisons]
    return BatchComparison(
        comparisons=comparisons,
        total_original_cost=sum(c.original_cost for c in comparisons),
        total_replayed_cost=sum(c.replayed_cost for c in comparisons),
        total_savings=sum(savings),
        average_savings_percent=sum(percents) / len(percents) if percents else None,
        best_index=max(range(len(savings)), key=savings.__getitem__),
        worst_index=min(range(len(savings)), key=savings.__getitem__),
    )


def format_comparison(result: ComparisonResult) -> str:
    """Plain-text report of a comparison."""
    lines = [
        "=== Cost Comparison ===",
        "",
        f"Original ({result.original_model}): ${result.original_cost:.6f}",
        f"Replayed ({result.replayed_model}): ${result.replayed_cost:.6f}",
        "",
    ]
    if result.cost_savings_percent is None:
        lines.append(f"Savings: ${result.cost_savings:.6f} (percentage undefined, original cost is zero)")
    elif result.cost_savings >= 0:
        lines.append(f"Savings: ${result.cost_savings:.6f} ({result.cost_savings_percent:.1f}%)")
    else:
        lines.append(f"Extra cost: ${-result.cost_savings:.6f} ({-result.cost_savings_percent:.1f}%)")
    lines.append(f"Token delta: {result.token_delta:+d}")
    lines.append(f"Text similarity: {result.diff.similarity:.0%}")

    if result.recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"  - {item}" for item in result.recommendations)
    return "\n".join(lines)
