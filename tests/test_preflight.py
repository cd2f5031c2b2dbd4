import pytest

from fedora_optimizer.errors import PrivilegeError
from fedora_optimizer.preflight import available_memory_mb, check_resources, check_root


def test_low_memory_names_required_and_available():
    result = check_resources(1024, 5120, memory_reader=lambda: 500, disk_reader=lambda: 20000)

    assert not result.ok
    assert not result
    assert "500 MB available" in result.message
    assert "1024 MB required" in result.message


def test_low_disk_names_required_and_available():
    result = check_resources(1024, 5120, memory_reader=lambda: 4096, disk_reader=lambda: 1000)

    assert not result.ok
    assert "1000 MB available" in result.message
    assert "5120 MB required" in result.message


def test_both_short_reports_both():
    result = check_resources(memory_reader=lambda: 500, disk_reader=lambda: 1000)

    assert "memory" in result.message
    assert "disk" in result.message


def test_enough_resources():
    result = check_resources(memory_reader=lambda: 2048, disk_reader=lambda: 10240)
    assert result.ok


def test_unreadable_memory_fails():
    result = check_resources(memory_reader=lambda: None, disk_reader=lambda: 10240)
    assert not result.ok
    assert "Could not determine available memory" in result.message


def test_available_memory_reads_memavailable(tmp_path):
    meminfo = tmp_path / "meminfo"
    meminfo.write_text(
        "MemTotal:       16384000 kB\n"
        "MemFree:          102400 kB\n"
        "MemAvailable:    2097152 kB\n"
    )
    assert available_memory_mb(meminfo) == 2048


def test_available_memory_missing_file(tmp_path):
    assert available_memory_mb(tmp_path / "nope") is None


def test_check_root():
    check_root(geteuid=lambda: 0)
    with pytest.raises(PrivilegeError):
        check_root(geteuid=lambda: 1000)
