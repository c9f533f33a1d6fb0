#!/usr/bin/env python3
"""
Graph views of a factorized EP representation.
"""

import networkx as nx
from networkx.algorithms import bipartite
from typing import List

from ..representation import FactEPRepresBivarPrec, FactorizedEPRepresentation


def factor_name(j: int) -> str:
    return f'f_{j}'


def variable_name(i: int) -> str:
    return f'x_{i}'


def prec_name(k: int) -> str:
    return f'tau_{k}'


def build_factor_graph(repr: FactorizedEPRepresentation) -> nx.Graph:
    """Bipartite factor graph of the representation.

    Factor nodes 'f_j' (bipartite=0) are connected to variable nodes 'x_i'
    (bipartite=1) for i in V_j, with edge attribute ``coeff`` = b_ji. For
    bivariate precision representations, 'f_j' is also connected to
    'tau_k(j)'.
    """
    G = nx.Graph()
    G.add_nodes_from((factor_name(j) for j in range(repr.num_potentials())),
                     bipartite=0)
    G.add_nodes_from((variable_name(i) for i in range(repr.num_variables())),
                     bipartite=1, kind='x')
    for j in range(repr.num_potentials()):
        row = repr.access_row(j)
        for i, b in zip(row.ind.tolist(), row.coeffs.tolist()):
            G.add_edge(factor_name(j), variable_name(i), coeff=b)
    if isinstance(repr, FactEPRepresBivarPrec):
        G.add_nodes_from((prec_name(k) for k in range(repr.num_prec_vars())),
                         bipartite=1, kind='tau')
        for j, k in enumerate(repr.tau_ind.tolist()):
            G.add_edge(factor_name(j), prec_name(k))
    return G


def potential_color_classes(repr: FactorizedEPRepresentation) -> List[List[int]]:
    """
    Partition potentials into classes whose members share no variable.

    Sequential updates within one class touch disjoint marginals and hence
    commute. Uses greedy colouring of the potential conflict graph.

    Returns:
        List of classes (sorted lists of potential indices), largest first
    """
    G = build_factor_graph(repr)
    factors = [factor_name(j) for j in range(repr.num_potentials())]
    conflicts = bipartite.projected_graph(G, factors)
    coloring = nx.greedy_color(conflicts, strategy='largest_first')
    classes = {}
    for j in range(repr.num_potentials()):
        classes.setdefault(coloring[factor_name(j)], []).append(j)
    return sorted(classes.values(), key=lambda c: (-len(c), c[0]))
