from uavnet.drone import DroneAgent
from uavnet.effects import NO_EXPOSURE, Device, DeviceKind, EffectField
from uavnet.errors import InvalidParameter
from uavnet.states import MalwareVariant, MissionState
import pytest


def _make_drone(drone_id: int, x: float, y: float = 0.0, **kwargs):
    return DroneAgent(id=drone_id, position=(x, y, 0.0), target=(0.0, 0.0, 0.0), **kwargs)


def _make_device(kind: DeviceKind, x: float = 0.0, radius: float = 10.0, **kwargs):
    return Device(kind, (x, 0.0, 0.0), radius, **kwargs)


def test_device_variants_check_their_payload():
    with pytest.raises(InvalidParameter) as exc:
        _make_device(DeviceKind.GPS_SPOOF)
    assert exc.value.field == "lure_point"

    with pytest.raises(InvalidParameter) as exc:
        _make_device(DeviceKind.MALWARE_SOURCE)
    assert exc.value.field == "malware"

    with pytest.raises(InvalidParameter):
        _make_device(DeviceKind.GPS_JAM, malware=MalwareVariant.DOS)

    with pytest.raises(InvalidParameter) as exc:
        _make_device(DeviceKind.CONTROL_JAM, radius=-1.0)
    assert exc.value.field == "radius"


def test_membership_per_device():
    devices = [
        _make_device(DeviceKind.GPS_JAM, 0.0),
        _make_device(DeviceKind.CONTROL_JAM, 100.0),
    ]
    drones = [_make_drone(1, 5.0), _make_drone(2, 95.0), _make_drone(3, 50.0)]

    field = EffectField.compute(devices, drones)

    assert field.members(0) == frozenset({1})
    assert field.members(1) == frozenset({2})
    assert field.exposure(1).gps_jammed
    assert not field.exposure(1).control_jammed
    assert field.exposure(2).control_jammed
    assert field.exposure(3) == NO_EXPOSURE


def test_overlapping_areas_all_apply():
    devices = [
        _make_device(DeviceKind.GPS_JAM),
        _make_device(DeviceKind.CONTROL_JAM),
        _make_device(DeviceKind.MALWARE_SOURCE, malware=MalwareVariant.INDICATOR),
        _make_device(DeviceKind.MALWARE_SOURCE, malware=MalwareVariant.DOS),
    ]

    exposure = EffectField.compute(devices, [_make_drone(1, 1.0)]).exposure(1)

    assert exposure.gps_jammed
    assert exposure.control_jammed
    assert exposure.malware == frozenset({MalwareVariant.INDICATOR, MalwareVariant.DOS})


def test_first_spoofer_wins():
    devices = [
        _make_device(DeviceKind.GPS_SPOOF, lure_point=(1.0, 1.0, 1.0)),
        _make_device(DeviceKind.GPS_SPOOF, lure_point=(2.0, 2.0, 2.0)),
    ]

    field = EffectField.compute(devices, [_make_drone(1, 0.0)])

    assert field.exposure(1).spoof_lure == (1.0, 1.0, 1.0)


def test_disabled_drones_are_not_exposed():
    devices = [_make_device(DeviceKind.GPS_JAM)]
    drones = [_make_drone(1, 0.0, mission=MissionState.DISABLED)]

    field = EffectField.compute(devices, drones)

    assert field.members(0) == frozenset()
    assert field.exposure(1) == NO_EXPOSURE
