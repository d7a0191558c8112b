import matplotlib.pyplot as plt
import pytest

from chargemap.analysis.summary import points_to_frame, regions_to_frame
from chargemap.visualizer import ColorScale, MapStyle, MapVisualizer, compare_maps, plot_map


@pytest.fixture
def region_frame(make_joined, square):
    joined = [
        make_joined("A", count=0, income=40000, pct_white=20),
        make_joined("B", count=2, income=None, pct_white=60),
        make_joined("C", count=1, income=90000, pct_white=80),
    ]
    frame = regions_to_frame(joined)
    frame["geometry"] = [square(0, 0), square(1, 0), square(2, 0)]
    return frame


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_style_colormap_name():
    assert MapStyle().get_colormap_name() == "viridis"
    assert MapStyle(colormap=ColorScale.YELLOW_ORANGE_RED).get_colormap_name() == "YlOrRd"
    assert MapStyle(colormap="magma").get_colormap_name() == "magma"


def test_choropleth_with_missing_values(region_frame):
    fig, ax = MapVisualizer().choropleth(region_frame, "income", title="Income")

    assert ax.get_title() == "Income"
    assert len(ax.collections) >= 1
    assert fig is ax.get_figure()


def test_layers_are_chainable(region_frame):
    viz = MapVisualizer().add_layer(region_frame, "pct_white").add_layer(region_frame, zorder=0)

    assert len(viz.layers) == 2
    assert viz.clear_layers().layers == []


def test_plot_presence(region_frame):
    fig, ax = MapVisualizer().plot_presence(region_frame)

    assert ax.get_title() == "Regions with at least one station"


def test_plot_points(region_frame, make_point):
    points = points_to_frame([make_point(0.5, 0.5), make_point(2.2, 0.7)])
    viz = MapVisualizer()

    fig, ax = viz.plot_points(region_frame, points, title="Stations")

    assert [layer.zorder for layer in viz.layers] == [1, 2]
    assert ax.get_title() == "Stations"


def test_save_writes_file(region_frame, tmp_path):
    viz = MapVisualizer()
    fig, _ = viz.choropleth(region_frame, "pct_white")

    target = tmp_path / "map.png"
    viz.save(target, fig, dpi=50)

    assert target.exists() and target.stat().st_size > 0


def test_plot_map_saves_when_asked(region_frame, tmp_path):
    target = tmp_path / "quick.png"

    plot_map(region_frame, "count", save_path=str(target))

    assert target.exists()


def test_compare_maps_hides_unused_axes(region_frame):
    fig, axes = compare_maps(
        [
            (region_frame, "income", "Income"),
            (region_frame, "pct_white", "% white"),
            (region_frame, "count", "Stations"),
        ],
        ncols=2,
    )

    assert len(axes) == 3
    assert len(fig.axes) >= 4
    assert [ax.get_title() for ax in axes] == ["Income", "% white", "Stations"]
