# dag.py
from __future__ import annotations

from collections import deque
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Sequence, Set, Tuple

from .model import Action, ActionOutcome


def dependencies_of(actions: Sequence[Action]) -> Dict[str, List[str]]:
    """
    Effective dependencies of every action, derived only from what the spec
    declares explicitly:

      - parallel=False: every action declared before it (a barrier)
      - parallel=True:  its `needs` plus the closest preceding barrier

    `needs` may only name actions declared earlier, so declared order is
    always a valid execution order.
    """
    seen: List[str] = []
    last_barrier: str | None = None
    deps: Dict[str, List[str]] = {}

    for action in actions:
        if action.name in deps:
            raise ValueError(f"Duplicate action name: {action.name!r}")

        for need in action.needs:
            if need == action.name:
                raise ValueError(f"Action '{action.name}' needs itself")
            if need not in seen:
                raise ValueError(
                    f"Action '{action.name}' needs '{need}', which is not declared before it. "
                    f"Earlier actions: {seen}"
                )

        if action.parallel:
            d = list(action.needs)
            if last_barrier is not None and last_barrier not in d:
                d.append(last_barrier)
        else:
            d = list(seen)
            last_barrier = action.name

        deps[action.name] = d
        seen.append(action.name)

    return deps


def build_dag(actions: Sequence[Action]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build the action graph.

    Returns:
      adj:   dependency -> set of dependents
      indeg: number of unfinished dependencies per action
    """
    deps = dependencies_of(actions)
    adj: Dict[str, Set[str]] = {name: set() for name in deps}
    indeg: Dict[str, int] = {name: 0 for name in deps}

    for name, needs in deps.items():
        for need in needs:
            if name not in adj[need]:
                adj[need].add(name)
                indeg[name] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Convert the graph into topological "levels" (stages).
    Each stage can run in parallel.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    q = deque(sorted([n for n, d in indeg.items() if d == 0]))

    levels: List[List[str]] = []
    processed = 0

    while q:
        level_size = len(q)
        level: List[str] = []

        for _ in range(level_size):
            node = q.popleft()
            level.append(node)
            processed += 1

            for child in sorted(adj.get(node, set())):
                indeg[child] -= 1
                if indeg[child] == 0:
                    q.append(child)

        levels.append(level)

    if processed != len(indeg):
        remaining = sorted([n for n, d in indeg.items() if d > 0])
        raise ValueError(f"Action graph has a cycle. Stuck actions: {remaining}")

    return levels


def run_graph(
    actions: Sequence[Action],
    run_fn: Callable[[Action], ActionOutcome],
    *,
    max_workers: int,
) -> Tuple[Dict[str, ActionOutcome], List[str]]:
    """
    Run actions over a bounded thread pool, starting each one only after
    all of its dependencies finished without failing.

    After the first failed outcome nothing new is scheduled; in-flight
    actions are allowed to finish. An exception raised by run_fn stops
    scheduling the same way and is re-raised once the pool drains.

    Returns (outcomes by action name, names of actions never started).
    """
    by_name = {a.name: a for a in actions}
    order = [a.name for a in actions]
    adj, indeg = build_dag(actions)

    ready: List[str] = [name for name in order if indeg[name] == 0]
    results: Dict[str, ActionOutcome] = {}
    failed = False
    error: BaseException | None = None

    in_flight: Dict = {}

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        while ready or in_flight:
            # schedule all currently ready, in declared order
            while ready and not failed:
                name = ready.pop(0)
                fut = pool.submit(run_fn, by_name[name])
                in_flight[fut] = name

            if not in_flight:
                break

            done, _pending = wait(list(in_flight.keys()), return_when=FIRST_COMPLETED)
            for fut in done:
                name = in_flight.pop(fut)
                try:
                    outcome = fut.result()
                except Exception as e:
                    if error is None:
                        error = e
                    failed = True
                    continue

                results[name] = outcome
                if outcome.failed:
                    failed = True
                    continue

                # unlock dependents on success or skip
                for nxt in adj[name]:
                    indeg[nxt] -= 1
                    if indeg[nxt] == 0:
                        ready.append(nxt)
                ready.sort(key=order.index)

    if error is not None:
        raise error

    not_run = [name for name in order if name not in results]
    return results, not_run
