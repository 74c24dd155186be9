# tests/test_cli.py

import asyncio
import json
import logging

import pytest
import yaml
from cli import main_cli, timed_loader
from config import PreloaderConfig
from core.loading_metrics import LoadingMetricsRegistry


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('PRELOADER_EFFECTIVE_TYPE', raising=False)
    yield tmp_path

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, '_preloader', False)]:
        root.removeHandler(handler)
        handler.close()


def test_init_config(workdir):
    assert main_cli(['init-config', '--path', 'custom.yaml']) == 0

    config = PreloaderConfig.load(str(workdir / 'custom.yaml'))
    assert config.queue.default_priority == 'medium'


def test_strategy_command(workdir, capsys):
    assert main_cli(['strategy', 'image', '--speed', 'slow']) == 0

    output = capsys.readouterr().out
    body = yaml.safe_load(output.split('\n', 1)[1])
    assert body['quality'] == 50
    assert body['root_margin'] == 20


def test_strategy_command_unknown_type(workdir, capsys):
    assert main_cli(['strategy', 'route']) == 1
    assert 'No loading strategy' in capsys.readouterr().out


def test_preload_command(workdir, sample_images, capsys):
    (workdir / 'broken.png').write_bytes(b'garbage')

    exit_code = main_cli(['preload', str(workdir), '--export', 'metrics.json'])

    assert exit_code == 1
    output = capsys.readouterr().out
    assert 'Preloaded 3/4 images' in output

    metrics = json.loads((workdir / 'metrics.json').read_text())
    image_metrics = [m for m in metrics if m['type'] == 'image']
    assert len(image_metrics) == 4
    assert sum(m['status'] == 'error' for m in image_metrics) == 1
    assert any(m['id'] == 'preload-batch' and m['status'] == 'error' for m in metrics)


def test_preload_empty_directory(workdir, capsys):
    empty = workdir / 'empty'
    empty.mkdir()

    assert main_cli(['preload', str(empty)]) == 0
    assert 'No images found' in capsys.readouterr().out


@pytest.mark.asyncio
async def test_timed_loader_closes_metric_on_cancel():
    metrics = LoadingMetricsRegistry()

    async def cancelled_decode(src):
        raise asyncio.CancelledError()

    load = timed_loader(metrics, cancelled_decode)
    with pytest.raises(asyncio.CancelledError):
        await load('slow.png')

    metric = metrics.get_metrics()[0]
    assert metric.status == 'error'
    assert metric.duration is not None
