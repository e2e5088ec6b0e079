import numpy as np
import matplotlib.pyplot as plt
from matplotlib.collections import PatchCollection
from matplotlib.patches import Polygon
from typing import Sequence, Tuple

from .core import Flowpipe
from .polytope import Polytope


def _polygon(polytope: Polytope, dims: Tuple[int, int]):
    vertices = polytope.projection_vertices(dims)
    if len(vertices) == 0:
        return None
    return Polygon(vertices, closed=True)


def plot_polytope(polytope: Polytope, ax: plt.Axes = None, dims: Tuple[int, int] = (0, 1),
                  color='tab:blue', alpha: float = 0.5, **kwargs):
    """
    Plots the projection of a polytope onto two coordinates.

    :param polytope: The polytope.
    :param ax: The matplotlib axes to plot on. If None, a new figure and axes are created.
    :param dims: The two coordinates to project onto.
    :param color: The face color.
    :param alpha: The face transparency.
    :param kwargs: Additional keyword arguments to pass to the Polygon patch.
    :return: The axes.
    """
    if ax is None:
        _, ax = plt.subplots()

    patch = _polygon(polytope, dims)
    if patch is not None:
        patch.set_facecolor(color)
        patch.set_alpha(alpha)
        patch.update(kwargs)
        ax.add_patch(patch)
        ax.autoscale_view()

    return ax


def plot_flowpipe(flowpipe: Flowpipe, ax: plt.Axes = None, dims: Tuple[int, int] = (0, 1),
                  steps: Sequence[int] = None, cmap: str = 'viridis',
                  labels: Sequence[str] = None, **kwargs):
    """
    Plots the projection of a flowpipe onto two coordinates.

    Every step is colored according to its index.

    :param flowpipe: The flowpipe returned by Model.reach().
    :param ax: The matplotlib axes to plot on. If None, a new figure and axes are created.
    :param dims: The two coordinates to project onto.
    :param steps: The steps to be plotted. All of them if None.
    :param cmap: The name of the matplotlib colormap.
    :param labels: The axis labels (optional).
    :param kwargs: Additional keyword arguments to pass to the PatchCollection.
    :return: The axes.
    """
    if ax is None:
        _, ax = plt.subplots()

    if steps is None:
        steps = range(len(flowpipe))

    colormap = plt.get_cmap(cmap)
    num_steps = max(len(flowpipe) - 1, 1)

    patches = []
    colors = []
    for i in steps:
        color = colormap(i / num_steps)
        for polytope in flowpipe[i]:
            patch = _polygon(polytope, dims)
            if patch is not None:
                patches.append(patch)
                colors.append(color)

    if patches:
        pc = PatchCollection(patches, facecolors=colors, edgecolors='black',
                             linewidths=0.3, alpha=0.7, **kwargs)
        ax.add_collection(pc)

        vertices = np.vstack([p.get_xy() for p in patches])
        lower = vertices.min(axis=0)
        upper = vertices.max(axis=0)
        margin = 0.05 * np.maximum(upper - lower, 1e-9)
        ax.set_xlim(lower[0] - margin[0], upper[0] + margin[0])
        ax.set_ylim(lower[1] - margin[1], upper[1] + margin[1])

    if labels is not None:
        ax.set_xlabel(labels[0])
        ax.set_ylabel(labels[1])

    return ax


def save_flowpipe_plot(flowpipe: Flowpipe, output_path: str, dims: Tuple[int, int] = (0, 1),
                       labels: Sequence[str] = None, title: str = None):
    """
    Plots a flowpipe projection and saves it to a file.
    """
    fig, ax = plt.subplots(1, 1, figsize=(6, 6))
    plot_flowpipe(flowpipe, ax=ax, dims=dims, labels=labels)
    if title is not None:
        ax.set_title(title)

    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
