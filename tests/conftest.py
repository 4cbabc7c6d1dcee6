import logging

import ezdxf
import pytest

from nestprep import create_app
from nestprep.utils.entities import Arc, Circle, Line, Polyline


# Log all test failures to error.log alongside the app's own log output
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    rep = outcome.get_result()
    if rep.when == 'call' and rep.failed:
        logging.error(f"Test {item.nodeid} FAILED\n{rep.longrepr}")


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'LOG_FILE': str(tmp_path / 'test.log'),
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def square_lines(size=50.0, origin=(0.0, 0.0)):
    ox, oy = origin
    corners = [(ox, oy), (ox + size, oy), (ox + size, oy + size), (ox, oy + size)]
    return [Line(f"L{i}", "0", [corners[i], corners[(i + 1) % 4]]) for i in range(4)]


@pytest.fixture
def square():
    return square_lines()


@pytest.fixture
def make_dxf(tmp_path):
    """Write a DXF with ezdxf. build(msp) adds entities; returns the file path."""

    def _make(name, build):
        doc = ezdxf.new('R2010')
        build(doc.modelspace())
        path = tmp_path / name
        doc.saveas(path)
        return str(path)

    return _make


@pytest.fixture
def plate_dxf(make_dxf):
    """100x60 rectangle of lines with a circular hole."""

    def build(msp):
        corners = [(0, 0), (100, 0), (100, 60), (0, 60)]
        for i in range(4):
            msp.add_line(corners[i], corners[(i + 1) % 4])
        msp.add_circle((50, 30), 10)

    return make_dxf('plate.dxf', build)


@pytest.fixture
def mixed_entities():
    return [
        Line("a", "0", [(0.0, 0.0), (40.0, 0.0)]),
        Arc("b", "0", (40.0, 10.0), 10.0, 270.0, 90.0),
        Line("c", "0", [(40.0, 20.0), (0.0, 20.0)]),
        Polyline("d", "0", [(0.0, 20.0), (0.0, 0.0)]),
        Circle("e", "CUT", (20.0, 10.0), 4.0),
    ]
