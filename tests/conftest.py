import os

import pytest

from fedlinreg.utils.config import load_config, override_config


def write_samples(path, samples):
    os.makedirs(os.path.dirname(str(path)) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for x, y in samples:
            f.write(f"{x} {y}\n")
    return str(path)


def line_samples(n, offset=0.0, slope=2, intercept=1):
    # y = slope * x + intercept stays integral because 2 * offset is integral
    return [(k + offset, int(slope * (k + offset) + intercept)) for k in range(1, n + 1)]


@pytest.fixture
def make_config(tmp_path):
    """
    Build a config whose client/test files live under tmp_path.
    Client i holds 10 points on y = 2x + 1 shifted by 0.5 * i.
    """

    def _make(num_clients=3, **overrides):
        data_dir = tmp_path / "dataset"
        for i in range(num_clients):
            write_samples(data_dir / f"trainset_{i + 1}.txt", line_samples(10, offset=0.5 * i))
        test_file = write_samples(data_dir / "testset.txt", line_samples(6, offset=0.5))

        cfg = load_config()
        cfg = override_config(
            cfg,
            {
                "experiment.num_clients": num_clients,
                "data.train_file_pattern": str(data_dir / "trainset_{n}.txt"),
                "data.test_file": test_file,
                "output.params_dir": str(tmp_path / "params"),
                "output.results_dir": str(tmp_path / "results"),
                "client.epochs": 3000,
                "centralized.epochs": 500,
            },
        )
        return override_config(cfg, overrides)

    return _make
