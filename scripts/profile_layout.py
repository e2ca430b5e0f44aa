"""
Profile colayout on a handful of synthetic graphs.

Usage:
    python scripts/profile_layout.py [scenario ...]

With no arguments every scenario runs. Each one prints its wall time and the
top functions by cumulative time, and dumps a .prof file for pstats.
"""

import cProfile
import io
import pstats
import sys
import time
from pstats import SortKey

import numpy as np

from colayout import Group, Layout, Link, Node


def random_graph(n_nodes, n_links, size=None, seed=42):
    """Nodes (optionally sized) and roughly n_links random links without self loops."""
    rng = np.random.default_rng(seed)
    nodes = [Node(width=size, height=size) for _ in range(n_nodes)]
    links = []
    for _ in range(n_links):
        s, t = (int(i) for i in rng.integers(0, n_nodes, size=2))
        if s != t:
            links.append(Link(s, t))
    return nodes, links


def unconstrained_medium():
    nodes, links = random_graph(100, 200)
    Layout().size(800, 600).link_distance(60).set_nodes(nodes).set_links(links).start(
        50, 0, 0, 0, keep_running=False
    )


def unconstrained_large():
    nodes, links = random_graph(400, 800)
    Layout().size(1200, 900).link_distance(60).set_nodes(nodes).set_links(links).start(
        30, 0, 0, 0, keep_running=False
    )


def overlap_avoidance():
    nodes, links = random_graph(60, 100, size=30)
    Layout().size(800, 600).link_distance(80).avoid_overlaps().set_nodes(nodes).set_links(links).start(
        30, 10, 20, 0, keep_running=False
    )


def flow_with_groups():
    nodes, links = random_graph(60, 90, size=20)
    groups = [Group(leaves=list(range(k, k + 20)), padding=10) for k in (0, 20, 40)]
    (Layout()
        .size(800, 600)
        .link_distance(60)
        .avoid_overlaps()
        .flow_layout('y', 30)
        .set_nodes(nodes)
        .set_links(links)
        .set_groups(groups)
        .start(30, 10, 20, 0, keep_running=False))


def power_graph_and_routing():
    nodes, links = random_graph(40, 80, size=20)
    layout = Layout().size(800, 600).link_distance(80).avoid_overlaps()
    layout.set_nodes(nodes).set_links(links)
    layout.power_graph_groups()
    layout.start(30, 10, 20, 0, keep_running=False)
    layout.prepare_edge_routing(5)
    for l in links[:20]:
        layout.route_edge(l)


SCENARIOS = {
    'unconstrained_medium': unconstrained_medium,
    'unconstrained_large': unconstrained_large,
    'overlap_avoidance': overlap_avoidance,
    'flow_with_groups': flow_with_groups,
    'power_graph_and_routing': power_graph_and_routing,
}


def profile(name, func, top=20):
    print(f"\n{'=' * 60}\n{name}\n{'=' * 60}")
    profiler = cProfile.Profile()
    t0 = time.perf_counter()
    profiler.enable()
    func()
    profiler.disable()
    print(f"Total time: {time.perf_counter() - t0:.3f}s")

    s = io.StringIO()
    pstats.Stats(profiler, stream=s).sort_stats(SortKey.CUMULATIVE).print_stats(top)
    print(s.getvalue())
    profiler.dump_stats(f"profile_{name}.prof")


def main(argv):
    names = argv or list(SCENARIOS)
    for name in names:
        if name not in SCENARIOS:
            print(f"Unknown scenario {name!r}; choose from {', '.join(SCENARIOS)}")
            return 1
        profile(name, SCENARIOS[name])
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
