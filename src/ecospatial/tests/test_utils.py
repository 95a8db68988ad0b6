import logging

import numpy as np
import pytest

from ecospatial import utils
from ecospatial.grid import Grid


def _raise_io_error():
    raise OSError('scene.tif: No such file or directory')


def test_safe_log_exception_falls_back_to_stderr(monkeypatch, capsys):
    def broken_handler(*args, **kwargs):
        raise RuntimeError('handler closed')

    monkeypatch.setattr(utils.logger, 'exception', broken_handler)
    try:
        _raise_io_error()
    except OSError as e:
        utils.safe_log_exception('failed to read raster', e, path='scene.tif', band=3)
    err = capsys.readouterr().err
    assert err.startswith('ecospatial: failed to read raster')
    assert "path='scene.tif', band=3" in err


def test_safe_log_exception_uses_caller_logger(caplog):
    io_logger = logging.getLogger('ecospatial.io')
    with caplog.at_level(logging.ERROR, logger='ecospatial.io'):
        try:
            _raise_io_error()
        except OSError as e:
            utils.safe_log_exception('failed to write raster', e, log=io_logger,
                                     path='out.tif', driver='GTiff')
    record = caplog.records[-1]
    assert record.name == 'ecospatial.io'
    assert record.exc_info is not None
    assert record.getMessage() == ("failed to write raster: scene.tif: No such file or directory "
                                   "(path='out.tif', driver='GTiff')")


def test_as_float_array_accepts_grid_and_lists():
    g = Grid(np.ones((2, 3)))
    assert utils.as_float_array(g).shape == (2, 3)
    assert utils.as_float_array([[1, 2], [3, 4]]).dtype == float


def test_as_float_array_rejects():
    with pytest.raises(ValueError):
        utils.as_float_array(None, 'red')
    with pytest.raises(ValueError):
        utils.as_float_array(np.ones(3), 'red')
    with pytest.raises(TypeError):
        utils.as_float_array([['a', object()]], 'red')


def test_check_same_shape():
    assert utils.check_same_shape({'a': np.ones((2, 2)), 'b': np.zeros((2, 2))}) == (2, 2)
    with pytest.raises(ValueError, match='a=\\(2, 2\\)'):
        utils.check_same_shape({'a': np.ones((2, 2)), 'b': np.zeros((3, 2))})


def test_as_pair():
    assert utils.as_pair(3) == (3.0, 3.0)
    assert utils.as_pair([1, 2]) == (1.0, 2.0)
    with pytest.raises(ValueError):
        utils.as_pair([1, 2, 3])
