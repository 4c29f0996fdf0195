"""
单元测试：传感器扫描与分类

测试覆盖：
- 分类规则（大小写不敏感、优先级、默认 OTHER）
- hwmon 通道读取、label 合成、ID 格式
- 读取失败的通道跳过并计数
- thermal zone 固定为 CPU；thermal 根目录缺失不影响扫描
- hwmon 根目录缺失抛出 SensorScanError
"""

import pytest

from tempmon_agent.collectors import classify_sensor, scan_hwmon, scan_thermal_zones
from tempmon_agent.exceptions import SensorScanError
from tempmon_agent.models import SensorType
from tempmon_agent.scanner import SensorScanner


class TestClassifySensor:
    """分类规则测试"""

    @pytest.mark.parametrize("label, device, expected", [
        ("Package id 0", "coretemp", SensorType.CPU),
        ("Composite", "nvme0", SensorType.DISK),
        ("", "unknownchip", SensorType.OTHER),
        ("edge", "amdgpu", SensorType.GPU),
        ("GPU Core", "acpitz", SensorType.GPU),
        ("CPU Temperature", "asus", SensorType.CPU),
        ("nvme temp", "drivetemp", SensorType.DISK),
    ])
    def test_known_chips(self, label, device, expected):
        assert classify_sensor(label, device) == expected

    def test_case_insensitive(self):
        """测试：大小写不敏感"""
        assert classify_sensor("x", "CoreTemp") == SensorType.CPU
        assert classify_sensor("x", "NVIDIA") == SensorType.GPU

    def test_first_rule_wins(self):
        """测试：coretemp 设备上带 gpu 字样的 label 仍是 CPU"""
        assert classify_sensor("gpu", "coretemp") == SensorType.CPU

    def test_none_inputs(self):
        assert classify_sensor(None, None) == SensorType.OTHER


class TestScanHwmon:
    """hwmon 扫描测试"""

    def test_one_sample_per_channel(self, sysfs):
        sysfs.add_hwmon(0, "coretemp", {1: "45000\n", 2: "47500\n"}, {1: "Package id 0", 2: "Core 0"})

        samples, skipped = scan_hwmon(sysfs.hwmon)

        assert skipped == 0
        assert [s.id for s in samples] == ["hwmon0_1", "hwmon0_2"]
        assert [s.name for s in samples] == ["Package id 0", "Core 0"]
        assert samples[0].milli_celsius == 45000
        assert samples[1].celsius == pytest.approx(47.5)
        assert all(s.type == SensorType.CPU for s in samples)

    def test_unparseable_channel_skipped(self, sysfs):
        """测试：无法解析的通道被跳过，同设备其他通道正常"""
        sysfs.add_hwmon(0, "nvme", {1: "38850\n", 2: "N/A\n"}, {1: "Composite"})

        samples, skipped = scan_hwmon(sysfs.hwmon)

        assert len(samples) == 1
        assert samples[0].id == "hwmon0_1"
        assert samples[0].type == SensorType.DISK
        assert skipped == 1

    def test_label_synthesized_when_missing(self, sysfs):
        sysfs.add_hwmon(3, "acpitz", {1: "27800\n"})

        samples, _ = scan_hwmon(sysfs.hwmon)

        assert samples[0].name == "acpitz_1"
        assert samples[0].id == "hwmon3_1"

    def test_blank_label_treated_as_missing(self, sysfs):
        sysfs.add_hwmon(0, "acpitz", {2: "30000\n"}, {2: "   "})

        samples, _ = scan_hwmon(sysfs.hwmon)

        assert samples[0].name == "acpitz_2"

    def test_missing_device_name(self, sysfs):
        """测试：缺少 name 文件时设备名为 Unknown"""
        sysfs.add_hwmon(0, None, {1: "40000\n"})

        samples, _ = scan_hwmon(sysfs.hwmon)

        assert samples[0].name == "Unknown_1"
        assert samples[0].type == SensorType.OTHER

    def test_natural_ordering(self, sysfs):
        sysfs.add_hwmon(10, "chip_b", {1: "1000\n"})
        sysfs.add_hwmon(2, "chip_a", {10: "2000\n", 2: "3000\n"})

        samples, _ = scan_hwmon(sysfs.hwmon)

        assert [s.id for s in samples] == ["hwmon2_2", "hwmon2_10", "hwmon10_1"]

    def test_negative_value(self, sysfs):
        sysfs.add_hwmon(0, "chip", {1: "-5000\n"})

        samples, _ = scan_hwmon(sysfs.hwmon)

        assert samples[0].celsius == pytest.approx(-5.0)

    def test_missing_root_raises(self, tmp_path):
        with pytest.raises(OSError):
            scan_hwmon(tmp_path / "nope")


class TestScanThermal:
    """thermal zone 扫描测试"""

    def test_zone_always_cpu(self, sysfs):
        sysfs.add_zone(0, "x86_pkg_temp", "52000\n")
        sysfs.add_zone(1, "iwlwifi_1", "40000\n")

        samples, skipped = scan_thermal_zones(sysfs.thermal)

        assert skipped == 0
        assert [s.id for s in samples] == ["thermal_zone0", "thermal_zone1"]
        assert [s.name for s in samples] == ["x86_pkg_temp", "iwlwifi_1"]
        assert all(s.type == SensorType.CPU for s in samples)

    def test_unreadable_zone_skipped(self, sysfs):
        sysfs.add_zone(0, "acpitz", "garbage\n")
        sysfs.add_zone(1, None, "33000\n")

        samples, skipped = scan_thermal_zones(sysfs.thermal)

        assert skipped == 1
        assert len(samples) == 1
        assert samples[0].name == "thermal"

    def test_ignores_cooling_devices(self, sysfs):
        (sysfs.thermal / "cooling_device0").mkdir()

        samples, skipped = scan_thermal_zones(sysfs.thermal)

        assert samples == []
        assert skipped == 0


class TestSensorScanner:
    """扫描器合并结果测试"""

    def test_merges_hwmon_and_thermal(self, sysfs):
        sysfs.add_hwmon(0, "coretemp", {1: "45000\n"}, {1: "Package id 0"})
        sysfs.add_zone(0, "acpitz", "27800\n")

        report = SensorScanner(sysfs.hwmon, sysfs.thermal).scan_report()

        assert [s.id for s in report.samples] == ["hwmon0_1", "thermal_zone0"]

    def test_missing_thermal_root_is_not_fatal(self, sysfs, tmp_path):
        sysfs.add_hwmon(0, "coretemp", {1: "45000\n"})

        samples = SensorScanner(sysfs.hwmon, tmp_path / "missing").scan()

        assert [s.id for s in samples] == ["hwmon0_1"]

    def test_missing_hwmon_root_raises(self, sysfs, tmp_path):
        sysfs.add_zone(0, "acpitz", "27800\n")

        with pytest.raises(SensorScanError):
            SensorScanner(tmp_path / "missing", sysfs.thermal).scan()

    def test_skipped_counts_both_subsystems(self, sysfs):
        sysfs.add_hwmon(0, "chip", {1: "bad"})
        sysfs.add_zone(0, "acpitz", "bad")

        report = SensorScanner(sysfs.hwmon, sysfs.thermal).scan_report()

        assert report.samples == []
        assert report.skipped == 2

    def test_repeated_scans_are_independent(self, sysfs):
        device = sysfs.add_hwmon(0, "chip", {1: "40000\n"})
        scanner = SensorScanner(sysfs.hwmon, sysfs.thermal)

        first = scanner.scan()
        (device / "temp1_input").write_text("41000\n")
        second = scanner.scan()

        assert first[0].milli_celsius == 40000
        assert second[0].milli_celsius == 41000
