"""
Path A: the two-pass extraction scheduler.

Pass 1 sends every chunk to the Extractor exactly once through a fixed-size
pool of workers that claim task indexes from a shared counter. Chunks that
came back empty but looked promising, or that succeeded and carry strong
rule signal, become Pass-2 candidates. After every Pass-1 worker has
finished, the deduplicated candidates get one more look with a batch prompt
and a larger token budget.

Every parsed item goes quality gate -> confidence scorer -> Collected.
Per-chunk failures are recorded through ``worker.errors`` and never raise.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from policylens.domain import (
    Chunk,
    ChunkHint,
    DefinitionBatch,
    DefinitionItem,
    ExtractionTask,
    NoneItem,
    PromptMode,
    RuleBatch,
    RuleItem,
    StructuredItem,
)
from policylens.services.classifier import is_definition_text, is_high_signal_rule_text
from policylens.services.confidence import score_item
from policylens.services.extraction import Extractor, parse_extractor_response
from policylens.services.quality import passes_quality_gate
from policylens.worker.config import WorkerConfig
from policylens.worker.context import ClaimCounter, JobRunContext
from policylens.worker.errors import ExtractorTimeout, record_chunk_error

logger = logging.getLogger(__name__)

PASS_1 = "P1"
PASS_2 = "P2"


# ---------------------------------------------------------------------------
# Task building
# ---------------------------------------------------------------------------

def is_definition_mode(chunk: Chunk) -> bool:
    return chunk.hint == ChunkHint.DEFINITIONS or is_definition_text(chunk.cleaned_text)


def token_budget(mode: PromptMode, cfg: WorkerConfig, *, pass2: bool) -> int:
    if pass2:
        return cfg.pass2_tokens
    return cfg.pass1_definition_tokens if mode.is_definition else cfg.pass1_rule_tokens


def build_tasks(chunks: Iterable[Chunk], cfg: WorkerConfig, *, pass2: bool = False) -> list[ExtractionTask]:
    tasks = []
    for chunk in chunks:
        mode = PromptMode.select(is_definition_mode(chunk), batch=pass2)
        tasks.append(ExtractionTask(chunk=chunk, prompt_mode=mode, token_budget=token_budget(mode, cfg, pass2=pass2)))
    return tasks


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------

def _accept(ctx: JobRunContext, item: DefinitionItem | RuleItem, chunk: Chunk) -> tuple[int, int]:
    if not passes_quality_gate(item):
        return 0, 0
    accepted = score_item(
        item,
        hint=chunk.hint,
        chunk_id=chunk.id,
        review_threshold=ctx.worker_cfg.review_threshold,
    )
    return 1, (1 if ctx.collected.add(accepted) else 0)


def _accept_all(ctx: JobRunContext, items, chunk: Chunk) -> tuple[int, int]:
    passed = stored = 0
    for item in items:
        p, s = _accept(ctx, item, chunk)
        passed += p
        stored += s
    return passed, stored


def route_item(ctx: JobRunContext, item: StructuredItem, chunk: Chunk) -> tuple[int, int]:
    """
    Route one parsed result into Collected.

    Returns ``(passed, stored)``: items that passed the quality gate, and the
    subset that was new to Collected. Duplicates of already-collected text
    count as passed.
    """
    if isinstance(item, NoneItem):
        return 0, 0
    if isinstance(item, (DefinitionItem, RuleItem)):
        return _accept(ctx, item, chunk)
    if isinstance(item, DefinitionBatch):
        return _accept_all(ctx, item.definitions, chunk)
    if isinstance(item, RuleBatch):
        return _accept_all(ctx, item.rules, chunk)
    raise TypeError(f"Cannot route {type(item).__name__}")


# ---------------------------------------------------------------------------
# Per-task processing
# ---------------------------------------------------------------------------

async def process_task(
    ctx: JobRunContext,
    extractor: Extractor,
    task: ExtractionTask,
    *,
    pass_label: str,
    candidates: dict[int, Chunk] | None = None,
) -> None:
    """One time-boxed extractor call plus routing. Never raises on chunk failures."""
    chunk = task.chunk
    cfg = ctx.worker_cfg
    try:
        raw = await asyncio.wait_for(
            extractor.call(task.prompt_mode, chunk.cleaned_text, task.token_budget),
            timeout=cfg.call_timeout_seconds,
        )
    except asyncio.TimeoutError:
        record_chunk_error(
            ctx, chunk.id,
            ExtractorTimeout(f"no response within {cfg.call_timeout_seconds}s"),
            pass_label=pass_label,
        )
        return
    except Exception as err:
        record_chunk_error(ctx, chunk.id, err, pass_label=pass_label)
        return

    item = parse_extractor_response(raw)
    high_signal = is_high_signal_rule_text(chunk.cleaned_text)

    if isinstance(item, NoneItem):
        ctx.metrics.failed_chunks += 1
        ctx.record_chunk_result(chunk.id, pass_label=pass_label, status="empty")
        if candidates is not None and (task.prompt_mode.is_definition or high_signal):
            candidates.setdefault(chunk.id, chunk)
        return

    passed, stored = route_item(ctx, item, chunk)
    if passed:
        ctx.metrics.parsed_chunks += 1
        if candidates is not None and high_signal:
            candidates.setdefault(chunk.id, chunk)
    ctx.record_chunk_result(
        chunk.id, pass_label=pass_label, status="parsed" if passed else "rejected", stored=stored,
    )


async def run_worker_pool(
    ctx: JobRunContext,
    extractor: Extractor,
    tasks: list[ExtractionTask],
    *,
    pass_label: str,
    candidates: dict[int, Chunk] | None = None,
) -> None:
    """Drain *tasks* with ``concurrency`` workers; returns once every worker is done."""
    if not tasks:
        return
    cfg = ctx.worker_cfg
    counter = ClaimCounter(len(tasks))

    async def worker(worker_id: int) -> None:
        while True:
            i = counter.claim()
            if i is None:
                break
            task = tasks[i]
            logger.info(
                "[%s] [%s Worker %s] Processing %s/%s | chunk %s | %s",
                ctx.job_id, pass_label, worker_id, i + 1, len(tasks), task.chunk.id, task.prompt_mode.value,
            )
            await process_task(ctx, extractor, task, pass_label=pass_label, candidates=candidates)
            await asyncio.sleep(cfg.inter_call_delay_seconds)

    n_workers = min(cfg.concurrency, len(tasks))
    await asyncio.gather(*(worker(w + 1) for w in range(n_workers)))


async def run_extraction(ctx: JobRunContext, chunks: list[Chunk], extractor: Extractor) -> list[int]:
    """Run both passes over *chunks*. Returns the Pass-2 candidate chunk ids."""
    cfg = ctx.worker_cfg
    ctx.metrics.total_chunks = len(chunks)

    candidates: dict[int, Chunk] = {}
    await run_worker_pool(ctx, extractor, build_tasks(chunks, cfg), pass_label=PASS_1, candidates=candidates)

    ctx.metrics.pass2_candidates = len(candidates)
    logger.info(
        "[%s] PASS 1 done: parsed=%s failed=%s timed_out=%s, candidates for P2: %s",
        ctx.job_id, ctx.metrics.parsed_chunks, ctx.metrics.failed_chunks,
        ctx.metrics.timed_out_chunks, len(candidates),
    )

    if candidates and cfg.pass2_enabled:
        pass2_tasks = build_tasks(candidates.values(), cfg, pass2=True)
        logger.info("[%s] STARTING PASS 2 with %s chunks", ctx.job_id, len(pass2_tasks))
        await run_worker_pool(ctx, extractor, pass2_tasks, pass_label=PASS_2)
        logger.info("[%s] PASS 2 done: %s", ctx.job_id, ctx.collected.counts())

    return list(candidates)
