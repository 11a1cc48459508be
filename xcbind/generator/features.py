"""Mapping of crate features to the protocol modules they enable."""

from collections.abc import Iterable

from .modules import CORE_MODULE

# Feature name -> protocol module name
FEATURE_MODULES: dict[str, str] = {
    "bigreq": "bigreq",
    "composite": "composite",
    "damage": "damage",
    "dpms": "dpms",
    "dri2": "dri2",
    "dri3": "dri3",
    "ge": "ge",
    "glx": "glx",
    "present": "present",
    "randr": "randr",
    "record": "record",
    "render": "render",
    "res": "res",
    "screensaver": "screensaver",
    "shape": "shape",
    "shm": "shm",
    "sync": "sync",
    "xc_misc": "xc_misc",
    "xevie": "xevie",
    "xf86dri": "xf86dri",
    "xfixes": "xfixes",
    "xinerama": "xinerama",
    "xinput": "xinput",
    "xkb": "xkb",
    "xprint": "xprint",
    "xselinux": "xselinux",
    "xtest": "xtest",
    "xv": "xv",
    "xvmc": "xvmc",
}


def modules_for_features(features: Iterable[str]) -> list[str]:
    """Return the modules to generate for a set of features, core module first."""
    modules = [CORE_MODULE]
    for feature in features:
        if feature not in FEATURE_MODULES:
            raise ValueError(f"Unknown feature: {feature}")
        module = FEATURE_MODULES[feature]
        if module not in modules:
            modules.append(module)
    return modules
