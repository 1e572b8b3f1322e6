import numpy as np
import plotly.graph_objects as go

from densetraj.dense_output import HermitianDenseOutput


def _node_samples(dense_output: HermitianDenseOutput):
    """Committed sample times and states, without duplicated step boundaries."""
    times, states = [], []
    for i, step in enumerate(dense_output.get_committed_steps()):
        skip = 0 if i == 0 else 1
        times.extend(float(t) for t in step.get_times()[skip:])
        states.extend(np.asarray(x) for x in step.get_states()[skip:])
    return np.array(times), np.stack(states)


def plot_dense_output(
    dense_output: HermitianDenseOutput,
    num_points: int = 200,
    component: int | None = None,
) -> go.Figure:
    """Plot a dense output trajectory against time.

    Each state component is drawn as a line evaluated on a uniform grid over
    the committed span, with markers at the committed sample nodes.

    Args:
        dense_output: Dense output to plot
        num_points: Number of evaluation points along the span
        component: Single component index to plot. If None, plots all.

    Returns:
        Plotly figure

    Example:
        >>> plot_dense_output(result.dense_output, component=0).show()
    """
    if dense_output.is_empty():
        raise RuntimeError("Cannot plot an empty dense output")

    dim = dense_output.get_dimensions()
    if component is not None and (component < 0 or component >= dim):
        raise ValueError(f"Component {component} out of range (dim={dim})")
    components = range(dim) if component is None else [component]

    t_full = np.linspace(
        float(dense_output.get_start_time()), float(dense_output.get_end_time()), num_points
    )
    x_full = np.asarray(dense_output.sample(t_full.tolist()))
    t_nodes, x_nodes = _node_samples(dense_output)

    fig = go.Figure()
    fig.update_layout(title_text="Dense Output", template="plotly_dark")
    for i in components:
        fig.add_trace(
            go.Scatter(
                x=t_full,
                y=x_full[:, i],
                mode="lines",
                name=f"x_{i}",
                line={"width": 2},
            )
        )
        fig.add_trace(
            go.Scatter(
                x=t_nodes,
                y=x_nodes[:, i],
                mode="markers",
                name=f"x_{i} samples",
                marker={"color": "cyan", "size": 6},
            )
        )

    fig.update_xaxes(title_text="Time (s)")
    fig.update_yaxes(title_text="State")
    return fig
