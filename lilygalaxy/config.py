from __future__ import annotations

import copy
from typing import Mapping, Optional

DEFAULTS = dict(
    camera=dict(
        flowers=dict(fov=75, near=0.2, far=3000, position=(50, 750, 450),
                     zoomMode="radius", zoomFactor=0.5, zoomMin=300, zoomMax=2000),
        text=dict(fov=75, near=0.1, far=3000, position=(0, 50, 900), initialPitch=0.0, initialYaw=0.0,
                  zoomMode="dolly", zoomFactor=0.1, zoomMin=100, zoomMax=1500),
        dragSensitivity=0.005,
    ),
    flowerField=dict(
        gridHalfExtent=2, spacing=200, randomOffset=80, randomHeight=40, bowl=4000,
        blueProbability=0.4, scaleMin=0.7, scaleRange=0.3,
    ),
    core=dict(count=350, baseRadius=35.0, orbitSpeed=0.005),
    petals=dict(count=24, starsPerPetal=150, innerRadius=40.0, length=280.0, orbitSpeed=0.0008),
    connections=dict(gaps=6, starsPerGap=80, innerRadius=50.0, length=270.0, orbitSpeed=0.001),
    text=dict(
        mainText="little gift for bonghoadepnhat", subText="click here",
        mainFontSize=300, subFontSize=180, textGap=150, fontFamily="Arial",
        mainColor="#ffffff", subColor="#ffddee",
        sampling=8, alphaThreshold=128, scale=0.5,
    ),
    background=dict(count=3000, radius=2000.0, color="#ffffff", size=2.0, opacity=0.6),
    animation=dict(jitterAmplitude=2.0, jitterFrequency=1.5, opacityScale=0.8),
    system=dict(frameIntervalMs=16, depthSort=True, backend="auto", minPolygonPx=4.0),
)


def merge_config(overrides: Optional[Mapping[str, object]] = None, base: Optional[Mapping[str, object]] = None) -> dict:
    """Return a deep copy of ``base`` (the defaults) with ``overrides`` merged in.

    Sub-dicts are merged key by key, anything else replaces the stored value.
    """

    merged = copy.deepcopy(dict(base if base is not None else DEFAULTS))
    if not isinstance(overrides, Mapping):
        return merged
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = merge_config(value, current)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
