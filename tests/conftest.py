import pytest

from banner_animator.core.config import EditorConfig
from banner_animator.core.editor import AnimationEditor
from banner_animator.core.models import Animation, AnimationType, AnimationMode, Layer
from banner_animator.core.playback import ManualTickSource
from banner_animator.core.store import EntityStore


LAYER_NAMES = ("Background", "Headline", "Logo", "Button")


def _make_layers(prefix: str, names=LAYER_NAMES):
    return [Layer(id=f"{prefix}-{i + 1}", name=name, type="text" if name == "Headline" else "rectangle")
            for i, name in enumerate(names)]


@pytest.fixture()
def config() -> EditorConfig:
    return EditorConfig()


@pytest.fixture()
def store(config) -> EntityStore:
    # three ad sizes: frame-1, frame-2, frame-3; frame-3 has no Logo
    s = EntityStore(config)
    s.add_ad_size(300, 250, layers=_make_layers("layer-1"))
    s.add_ad_size(728, 90, layers=_make_layers("layer-2"))
    s.add_ad_size(160, 600, layers=_make_layers("layer-3", ("Background", "Headline", "Button")))
    return s


@pytest.fixture()
def ticker() -> ManualTickSource:
    return ManualTickSource()


@pytest.fixture()
def editor(store, ticker) -> AnimationEditor:
    return AnimationEditor(store=store, tick_source=ticker)


@pytest.fixture()
def make_animation():
    def _make(start=0.0, duration=1.0, type=AnimationType.FADE_IN, mode=AnimationMode.ENTRANCE, **kwargs):
        return Animation(type=type, mode=mode, start_time=start, duration=duration, **kwargs)
    return _make
