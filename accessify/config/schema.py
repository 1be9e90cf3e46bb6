"""
Configuration schema definitions using Pydantic models.

This module defines the default Accessify configuration as Pydantic models.
The configuration manager works on the plain camelCase tree produced by
``default_configuration()``; the models provide the defaults, the typed
view returned by ``ConfigurationManager.as_model()`` and schema checks for
the validator.

The feature flag table mapping flag names to their ``enabled`` paths lives
here as well, since those paths are part of the schema.
"""

from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConfigurationFormat(Enum):
    """Supported configuration file formats."""
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"


SUPPORTED_LANGUAGES = ('en', 'he', 'ar', 'es', 'fr', 'de')
SUPPORTED_DIRECTIONS = ('ltr', 'rtl')
REQUIRED_FIELDS = ('version', 'language', 'direction')

# Feature flag name -> configuration path of the boolean it mirrors
FEATURE_FLAGS: 'OrderedDict[str, str]' = OrderedDict([
    ('textSizeAdjustment', 'visual.textSize.enabled'),
    ('highContrast', 'visual.contrast.enabled'),
    ('colorThemes', 'visual.themes.enabled'),
    ('customCursors', 'visual.cursors.enabled'),
    ('focusIndicators', 'visual.focusIndicators.enabled'),
    ('keyboardNavigation', 'navigation.keyboard.enabled'),
    ('focusManagement', 'navigation.focus.enabled'),
    ('skipLinks', 'navigation.skipLinks.enabled'),
    ('textToSpeech', 'reading.textToSpeech.enabled'),
    ('dyslexiaFonts', 'reading.fonts.enabled'),
    ('textSpacing', 'reading.spacing.enabled'),
    ('readingGuides', 'reading.guides.enabled'),
    ('largeTargets', 'motor.targets.enabled'),
    ('gestureAlternatives', 'motor.gestures.enabled'),
    ('voiceCommands', 'motor.voice.enabled'),
    ('motionControl', 'motor.motion.enabled'),
    ('multilingual', 'multilingual.enabled'),
    ('rtlSupport', 'multilingual.rtl.enabled'),
    ('plugins', 'plugins.enabled'),
])


class SchemaModel(BaseModel):
    """Base model: camelCase aliases, unknown keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class FeatureSettings(SchemaModel):
    """A feature section carrying an ``enabled`` switch."""

    enabled: bool = Field(
        default=True,
        description="Enable this feature"
    )


# Visual accessibility

class RangeSettings(FeatureSettings):
    """Numeric adjustment with bounds and a step."""

    current: float = 1.0
    min: float = 0.5
    max: float = 3.0
    step: float = 0.1


class ContrastSettings(FeatureSettings):
    current: str = "normal"
    modes: List[str] = Field(
        default_factory=lambda: ['normal', 'high', 'inverted', 'grayscale']
    )


class ThemeSettings(FeatureSettings):
    current: str = "default"
    available: List[str] = Field(
        default_factory=lambda: ['default', 'dark', 'light', 'colorblind-friendly']
    )


class CursorSettings(FeatureSettings):
    current: str = "default"
    available: List[str] = Field(
        default_factory=lambda: ['default', 'large', 'high-contrast']
    )


class FocusIndicatorSettings(FeatureSettings):
    style: str = "outline"
    color: str = "#0066cc"
    thickness: str = "2px"


class VisualSettings(SchemaModel):
    """Visual accessibility configuration."""

    text_size: RangeSettings = Field(
        default_factory=RangeSettings,
        description="Text scaling factor"
    )
    contrast: ContrastSettings = Field(default_factory=ContrastSettings)
    brightness: RangeSettings = Field(
        default_factory=lambda: RangeSettings(current=1.0, min=0.3, max=2.0, step=0.1),
        description="Page brightness factor"
    )
    themes: ThemeSettings = Field(default_factory=ThemeSettings)
    cursors: CursorSettings = Field(default_factory=CursorSettings)
    focus_indicators: FocusIndicatorSettings = Field(default_factory=FocusIndicatorSettings)


# Navigation accessibility

class ShortcutSettings(FeatureSettings):
    skip_to_content: str = "Alt+S"
    toggle_menu: str = "Alt+M"
    increase_text_size: str = "Alt+Plus"
    decrease_text_size: str = "Alt+Minus"
    toggle_contrast: str = "Alt+C"
    toggle_high_contrast: str = "Alt+H"


class KeyboardSettings(FeatureSettings):
    shortcuts: ShortcutSettings = Field(default_factory=ShortcutSettings)


class FocusSettings(FeatureSettings):
    trap: bool = True
    visible: bool = True
    order: str = "logical"


class SkipLinkSettings(FeatureSettings):
    visible: bool = True


class NavigationSettings(SchemaModel):
    """Keyboard and focus navigation configuration."""

    keyboard: KeyboardSettings = Field(default_factory=KeyboardSettings)
    focus: FocusSettings = Field(default_factory=FocusSettings)
    skip_links: SkipLinkSettings = Field(default_factory=SkipLinkSettings)


# Reading accessibility

class TextToSpeechSettings(FeatureSettings):
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: str = "auto"


class FontSettings(FeatureSettings):
    dyslexia: bool = True
    current: str = "default"
    available: List[str] = Field(
        default_factory=lambda: ['default', 'opendyslexic', 'lexend', 'atkinson']
    )


class SpacingSettings(FeatureSettings):
    line_height: float = 1.5
    letter_spacing: str = "normal"
    word_spacing: str = "normal"


class GuideSettings(FeatureSettings):
    reading_ruler: bool = True
    text_highlighting: bool = True


class ReadingSettings(SchemaModel):
    """Reading support configuration."""

    text_to_speech: TextToSpeechSettings = Field(default_factory=TextToSpeechSettings)
    fonts: FontSettings = Field(default_factory=FontSettings)
    spacing: SpacingSettings = Field(default_factory=SpacingSettings)
    guides: GuideSettings = Field(default_factory=GuideSettings)


# Motor accessibility

class TargetSettings(FeatureSettings):
    min_size: int = Field(
        default=44,
        description="Minimum interactive target size in pixels"
    )
    padding: int = 8


class GestureSettings(FeatureSettings):
    alternatives: bool = True


class VoiceSettings(FeatureSettings):
    commands: bool = True


class MotionSettings(FeatureSettings):
    reduced: bool = False


class DelaySettings(FeatureSettings):
    interaction: int = 0
    hover: int = 0


class MotorSettings(SchemaModel):
    """Motor accessibility configuration."""

    targets: TargetSettings = Field(default_factory=TargetSettings)
    gestures: GestureSettings = Field(default_factory=GestureSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)
    motion: MotionSettings = Field(default_factory=MotionSettings)
    delays: DelaySettings = Field(default_factory=DelaySettings)


# Multilingual, plugins, testing

class RtlSettings(FeatureSettings):
    auto_detect: bool = True


class MultilingualSettings(FeatureSettings):
    auto_detect: bool = True
    fallback: str = "en"
    rtl: RtlSettings = Field(default_factory=RtlSettings)


class PluginSettings(FeatureSettings):
    """Plugin system configuration."""

    auto_load: bool = Field(
        default=True,
        description="Initialize enabled plugins on startup"
    )
    built_in: List[str] = Field(
        default_factory=lambda: ['textToSpeech', 'voiceCommands', 'switchNavigation'],
        description="Ordered names of plugins initialized on startup"
    )


class ComplianceTestingSettings(FeatureSettings):
    enabled: bool = False
    axe: bool = True
    lighthouse: bool = True
    manual: bool = True


class AccessifyConfiguration(SchemaModel):
    """Main configuration model for Accessify."""

    version: str = Field(
        default="1.0.0",
        description="Configuration schema version"
    )
    language: str = Field(
        default="en",
        description="Interface language code"
    )
    direction: str = Field(
        default="ltr",
        description="Text direction (ltr or rtl)"
    )
    theme: str = "default"
    debug: bool = False

    visual: VisualSettings = Field(default_factory=VisualSettings)
    navigation: NavigationSettings = Field(default_factory=NavigationSettings)
    reading: ReadingSettings = Field(default_factory=ReadingSettings)
    motor: MotorSettings = Field(default_factory=MotorSettings)
    multilingual: MultilingualSettings = Field(default_factory=MultilingualSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)
    testing: ComplianceTestingSettings = Field(default_factory=ComplianceTestingSettings)


def default_configuration() -> Dict[str, Any]:
    """Build a fresh default configuration tree with camelCase keys."""
    return AccessifyConfiguration().model_dump(by_alias=True)
