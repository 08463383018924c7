"""
Palette & Harmony Analyzer
==========================

Turns a pixel buffer into a structured colour report:

1. Dominant colour and weighted palette (see pixelcore.palette)
2. Harmony sets derived from the dominant colour's hue
3. Colour temperature estimate (Kelvin-like scale)
4. Mood / emotion classification
5. WCAG contrast audit + colour-blindness simulation
6. Web-safe, print-safe and brand palettes, improvement hints
7. Pixel statistics

Every result type is a dataclass with to_dict() returning plain JSON types.

Usage:
    report = analyze_colors(buffer)
    print(report.color_temperature.category)
"""

import logging
import math
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from pixelcore import config
from pixelcore.buffer import PixelBuffer
from pixelcore.color_space import (
    cmyk_to_rgb, contrast_ratio, hex_to_rgb, hsl_to_rgb, luma601, rgb_to_cmyk, rgb_to_hex,
    rgb_to_hsl, rgb_to_hsl_array,
)
from pixelcore.palette import (
    PaletteEntry, PaletteExtractor, dominant_of_pixels, opaque_pixels, palette_of_pixels,
)

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass
class DominantColor:
    r: int
    g: int
    b: int
    hex: str


@dataclass
class ColorHarmony:
    analogous: List[str] = field(default_factory=list)
    complementary: List[str] = field(default_factory=list)
    triadic: List[str] = field(default_factory=list)
    tetradic: List[str] = field(default_factory=list)
    split_complementary: List[str] = field(default_factory=list)
    monochromatic: List[str] = field(default_factory=list)


@dataclass
class ColorTemperature:
    value_kelvin: float
    category: str
    description: str


@dataclass
class ColorMood:
    primary: str
    secondary: List[str]
    emotions: List[str]
    associations: List[str]


@dataclass
class ContrastPair:
    background: str
    foreground: str
    ratio: float
    wcag_level: str


@dataclass
class ColorBlindnessSimulation:
    protanopia: List[str]
    deuteranopia: List[str]
    tritanopia: List[str]


@dataclass
class Accessibility:
    contrast_ratios: List[ContrastPair]
    color_blindness_simulation: ColorBlindnessSimulation


@dataclass
class Recommendations:
    web_safe: List[str]
    print_safe: List[str]
    brand_colors: List[str]
    improvements: List[str]


@dataclass
class ColorStatistics:
    unique_colors: int = 0
    avg_brightness: float = 0.0
    avg_saturation: float = 0.0
    colorfulness: float = 0.0
    contrast: float = 0.0
    vibrance: float = 0.0


@dataclass
class ColorAnalysisResult:
    dominant_color: DominantColor
    palette: List[PaletteEntry]
    color_harmony: ColorHarmony
    color_temperature: ColorTemperature
    color_mood: ColorMood
    accessibility: Accessibility
    recommendations: Recommendations
    statistics: ColorStatistics

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ColorScheme:
    name: str
    primary: str
    secondary: List[str]
    accent: List[str]
    neutral: List[str]
    description: str
    use_cases: List[str]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ColorSuggestion:
    type: str
    colors: List[str]
    description: str
    confidence: float
    suitable_for: List[str]

    def to_dict(self) -> dict:
        return asdict(self)


# ============================================================================
# TABLES
# ============================================================================

TEMPERATURE_CATEGORIES = [
    # (lower bound, category, description), first match wins
    (5000, "very_warm", "Very warm colours with a lively, energetic feel"),
    (3500, "warm", "Warm colours that feel comfortable and welcoming"),
    (2500, "neutral", "Balanced colours that suit most uses"),
    (1500, "cool", "Cool colours with a calm, relaxing feel"),
]
VERY_COOL = ("very_cool", "Very cool colours with an elegant, refined feel")

MOODS: Dict[str, Dict[str, List[str]]] = {
    "red": {
        "emotions": ["power", "passion", "energy", "love"],
        "associations": ["fire", "blood", "roses", "danger"],
    },
    "orange": {
        "emotions": ["enthusiasm", "warmth", "creativity", "fun"],
        "associations": ["sun", "oranges", "autumn", "activity"],
    },
    "yellow": {
        "emotions": ["happiness", "optimism", "energy", "brightness"],
        "associations": ["sun", "gold", "lemons", "attention"],
    },
    "green": {
        "emotions": ["calm", "growth", "freshness", "nature"],
        "associations": ["trees", "nature", "money", "health"],
    },
    "cyan": {
        "emotions": ["clarity", "freshness", "calm", "openness"],
        "associations": ["water", "ice", "tropics", "technology"],
    },
    "blue": {
        "emotions": ["calm", "trust", "stability", "wisdom"],
        "associations": ["sky", "sea", "trust", "technology"],
    },
    "purple": {
        "emotions": ["luxury", "creativity", "spirituality", "mystery"],
        "associations": ["royalty", "magic", "art", "fantasy"],
    },
    "pink": {
        "emotions": ["love", "tenderness", "softness", "romance"],
        "associations": ["roses", "femininity", "childhood", "delicacy"],
    },
    "black": {
        "emotions": ["power", "elegance", "mystery", "formality"],
        "associations": ["night", "luxury", "mourning", "strength"],
    },
    "white": {
        "emotions": ["purity", "simplicity", "peace", "cleanliness"],
        "associations": ["snow", "peace", "medicine", "beginnings"],
    },
    "gray": {
        "emotions": ["balance", "neutrality", "professionalism", "calm"],
        "associations": ["metal", "technology", "rain", "neutrality"],
    },
}

HUE_NAMES = [
    (30, "red"),
    (60, "orange"),
    (90, "yellow"),
    (150, "green"),
    (210, "cyan"),
    (270, "blue"),
    (330, "purple"),
]

# Rows produce R, G, B from the input (r, g, b)
COLOR_BLINDNESS = {
    "protanopia": ((0.567, 0.433, 0.0), (0.558, 0.442, 0.0), (0.0, 0.242, 0.758)),
    "deuteranopia": ((0.625, 0.375, 0.0), (0.7, 0.3, 0.0), (0.0, 0.3, 0.7)),
    "tritanopia": ((0.95, 0.05, 0.0), (0.0, 0.433, 0.567), (0.0, 0.475, 0.525)),
}

MOOD_LIMIT = 6
BRAND_LIMIT = 5


# ============================================================================
# HARMONY
# ============================================================================

def _rotated(h: float, s: float, l: float, offsets: Sequence[float]) -> List[str]:
    return [rgb_to_hex(*hsl_to_rgb((h + offset) % 360, s, l)) for offset in offsets]


def monochromatic(h: float, s: float, l: float) -> List[str]:
    return [
        rgb_to_hex(*hsl_to_rgb(h, s, lightness))
        for lightness in (0.2, 0.4, 0.6, 0.8)
        if abs(lightness - l) > 0.1
    ]


def color_harmony(r: int, g: int, b: int) -> ColorHarmony:
    """Harmony sets from the hue of (r, g, b); saturation and lightness are kept."""
    h, s, l = rgb_to_hsl(r, g, b)
    return ColorHarmony(
        analogous=_rotated(h, s, l, (-60, -30, 30, 60)),
        complementary=_rotated(h, s, l, (180,)),
        triadic=_rotated(h, s, l, (120, 240)),
        tetradic=_rotated(h, s, l, (90, 180, 270)),
        split_complementary=_rotated(h, s, l, (150, 210)),
        monochromatic=monochromatic(h, s, l),
    )


# ============================================================================
# TEMPERATURE & MOOD
# ============================================================================

def color_temperature_of(r: float, g: float, b: float) -> float:
    return 1500 + 3000 * (r + 0.5 * g) / (b + 1)


def color_temperature(palette: Sequence[PaletteEntry]) -> ColorTemperature:
    """Brightness-weighted mean temperature of the palette."""
    if not palette:
        value = 0.0
    else:
        temperatures = [color_temperature_of(e.r, e.g, e.b) for e in palette]
        weights = [e.r + e.g + e.b for e in palette]
        total_weight = sum(weights)
        if total_weight > 0:
            value = sum(t * w for t, w in zip(temperatures, weights)) / total_weight
        else:
            value = sum(temperatures) / len(temperatures)

    for bound, category, description in TEMPERATURE_CATEGORIES:
        if value > bound:
            return ColorTemperature(value_kelvin=value, category=category, description=description)
    return ColorTemperature(value_kelvin=value, category=VERY_COOL[0], description=VERY_COOL[1])


def color_name(r: int, g: int, b: int) -> str:
    """Coarse colour name from HSL."""
    h, s, l = rgb_to_hsl(r, g, b)
    if s < 0.1:
        if l < 0.2:
            return "black"
        if l > 0.8:
            return "white"
        return "gray"
    for bound, name in HUE_NAMES:
        if h < bound:
            return name
    return "pink"


def _unique(items: List[str], limit: int) -> List[str]:
    return list(dict.fromkeys(items))[:limit]


def color_mood(palette: Sequence[PaletteEntry]) -> ColorMood:
    primary = color_name(*palette[0].rgb) if palette else "gray"
    secondary = [color_name(*entry.rgb) for entry in palette[1:4]]

    mood = MOODS.get(primary, MOODS["gray"])
    emotions = list(mood["emotions"])
    associations = list(mood["associations"])
    for name in secondary:
        if name in MOODS:
            emotions.extend(MOODS[name]["emotions"][:2])
            associations.extend(MOODS[name]["associations"][:2])

    return ColorMood(
        primary=primary,
        secondary=secondary,
        emotions=_unique(emotions, MOOD_LIMIT),
        associations=_unique(associations, MOOD_LIMIT),
    )


# ============================================================================
# ACCESSIBILITY
# ============================================================================

def wcag_level(ratio: float) -> str:
    if ratio >= 7:
        return "AAA"
    if ratio >= 4.5:
        return "AA"
    return "fail"


def simulate_color_blindness(r: int, g: int, b: int, kind: str) -> str:
    matrix = COLOR_BLINDNESS[kind]
    return rgb_to_hex(*(row[0] * r + row[1] * g + row[2] * b for row in matrix))


def accessibility(palette: Sequence[PaletteEntry],
                  max_pairs: int = config.CONTRAST_PAIR_LIMIT) -> Accessibility:
    """Contrast audit over all palette pairs (i < j), highest ratios first."""
    pairs = []
    for i in range(len(palette)):
        for j in range(i + 1, len(palette)):
            ratio = contrast_ratio(palette[i].rgb, palette[j].rgb)
            pairs.append(ContrastPair(
                background=palette[i].hex,
                foreground=palette[j].hex,
                ratio=ratio,
                wcag_level=wcag_level(ratio),
            ))
    pairs.sort(key=lambda p: p.ratio, reverse=True)

    simulation = ColorBlindnessSimulation(**{
        kind: [simulate_color_blindness(*entry.rgb, kind) for entry in palette]
        for kind in COLOR_BLINDNESS
    })
    return Accessibility(contrast_ratios=pairs[:max_pairs], color_blindness_simulation=simulation)


# ============================================================================
# RECOMMENDATIONS
# ============================================================================

def web_safe(r: int, g: int, b: int) -> str:
    return rgb_to_hex(*(math.floor(c / 51 + 0.5) * 51 for c in (r, g, b)))


def print_safe(r: int, g: int, b: int) -> str:
    return rgb_to_hex(*cmyk_to_rgb(*rgb_to_cmyk(r, g, b)))


def brand_color(r: int, g: int, b: int) -> str:
    h, s, l = rgb_to_hsl(r, g, b)
    return rgb_to_hex(*hsl_to_rgb(h, min(0.8, max(0.4, s)), min(0.7, max(0.3, l))))


def improvements(stats: ColorStatistics) -> List[str]:
    hints = []
    if stats.avg_brightness < 0.3:
        hints.append("The image is fairly dark; raising brightness would improve clarity")
    elif stats.avg_brightness > 0.8:
        hints.append("The image is very bright; lowering brightness slightly would help")

    if stats.avg_saturation < 0.3:
        hints.append("Colours look washed out; raising saturation would make the image more vivid")
    elif stats.avg_saturation > 0.8:
        hints.append("Colours are oversaturated; lowering saturation would look more natural")

    if stats.contrast < 0.5:
        hints.append("Contrast is low; raising it would bring out detail")

    if stats.colorfulness < 0.4:
        hints.append("The image would benefit from more colour variety")
    return hints


def recommendations(palette: Sequence[PaletteEntry], stats: ColorStatistics) -> Recommendations:
    return Recommendations(
        web_safe=[web_safe(*e.rgb) for e in palette],
        print_safe=[print_safe(*e.rgb) for e in palette],
        brand_colors=[brand_color(*e.rgb) for e in palette[:BRAND_LIMIT]],
        improvements=improvements(stats),
    )


# ============================================================================
# STATISTICS
# ============================================================================

def color_statistics(buffer: PixelBuffer) -> ColorStatistics:
    """Statistics over opaque pixels; all zero when there are none."""
    return statistics_of_pixels(opaque_pixels(buffer))


def statistics_of_pixels(pixels: np.ndarray) -> ColorStatistics:
    if len(pixels) == 0:
        return ColorStatistics()

    rgb01 = pixels.astype(np.float64) / 255
    lum = luma601(rgb01)
    _, s, l = rgb_to_hsl_array(rgb01)
    lmax, lmin = float(lum.max()), float(lum.min())

    return ColorStatistics(
        unique_colors=int(len(np.unique(pixels, axis=0))),
        avg_brightness=float(lum.mean()),
        avg_saturation=float(s.mean()),
        colorfulness=float((rgb01.max(axis=1) - rgb01.min(axis=1)).mean()),
        contrast=(lmax - lmin) / (lmax + lmin + 0.05),
        vibrance=float((s * l).mean()),
    )


# ============================================================================
# PUBLIC API
# ============================================================================

def analyze_colors(buffer: PixelBuffer, palette_size: int = config.PALETTE_SIZE,
                   extractor: Optional[PaletteExtractor] = None,
                   max_pairs: int = config.CONTRAST_PAIR_LIMIT) -> ColorAnalysisResult:
    """
    Full colour analysis of a buffer.

    Args:
        buffer: Pixels to analyse; transparent pixels are ignored
        palette_size: Maximum palette entries
        extractor: Palette extractor; None selects the best available
        max_pairs: Number of contrast pairs to report
    """
    start = time.perf_counter()

    pixels = opaque_pixels(buffer)
    r, g, b = dominant_of_pixels(pixels, extractor)
    palette = palette_of_pixels(pixels, palette_size, extractor)
    stats = statistics_of_pixels(pixels)

    result = ColorAnalysisResult(
        dominant_color=DominantColor(r=r, g=g, b=b, hex=rgb_to_hex(r, g, b)),
        palette=palette,
        color_harmony=color_harmony(r, g, b),
        color_temperature=color_temperature(palette),
        color_mood=color_mood(palette),
        accessibility=accessibility(palette, max_pairs),
        recommendations=recommendations(palette, stats),
        statistics=stats,
    )
    logger.debug("analyzed %dx%d (%d colours) in %.1fms", buffer.width, buffer.height,
                 stats.unique_colors, (time.perf_counter() - start) * 1000)
    return result


NEUTRAL_LIGHT = ["#f8f9fa", "#e9ecef", "#dee2e6", "#ced4da"]
NEUTRAL_CONTRAST = ["#ffffff", "#f1f3f4", "#9aa0a6", "#3c4043"]


def suggest_color_schemes(hex_colors: Sequence[str]) -> List[ColorScheme]:
    """Ready-made schemes built around the given dominant colours."""
    schemes = []

    if hex_colors:
        base = hex_colors[0]
        try:
            h, s, l = rgb_to_hsl(*hex_to_rgb(base))
        except ValueError:
            logger.debug("skipping monochrome scheme for invalid colour %r", base)
        else:
            schemes.append(ColorScheme(
                name="monochrome",
                primary=base,
                secondary=monochromatic(h, s, l)[:3],
                accent=_rotated(h, s, l, (180,)),
                neutral=list(NEUTRAL_LIGHT),
                description="A calm, consistent scheme",
                use_cases=["corporate sites", "business apps", "educational content"],
            ))

    if len(hex_colors) >= 2:
        schemes.append(ColorScheme(
            name="complementary",
            primary=hex_colors[0],
            secondary=[hex_colors[1]],
            accent=list(hex_colors[2:4]),
            neutral=list(NEUTRAL_CONTRAST),
            description="A bold, eye-catching scheme",
            use_cases=["creative sites", "entertainment apps", "marketing campaigns"],
        ))

    schemes.append(ColorScheme(
        name="natural",
        primary="#2d5a27",
        secondary=["#56a03e", "#8bc34a"],
        accent=["#ff9800", "#ffc107"],
        neutral=["#f1f8e9", "#dcedc8", "#aed581"],
        description="Colours inspired by nature",
        use_cases=["health products", "environmental sites", "fitness apps"],
    ))
    return schemes


def smart_color_suggestions(base_hex: str, purpose: str) -> List[ColorSuggestion]:
    """
    Purpose-driven suggestions around a base colour, most confident first.

    purpose is one of web, print, brand or artistic; an invalid colour gives [].
    """
    try:
        h, s, l = rgb_to_hsl(*hex_to_rgb(base_hex))
    except ValueError:
        return []

    suggestions = []
    if purpose == "web":
        suggestions.append(ColorSuggestion(
            type="complementary",
            colors=_rotated(h, s, l, (180,)),
            description="Complementary colours for buttons and links",
            confidence=0.9,
            suitable_for=["buttons", "links", "highlights"],
        ))
        suggestions.append(ColorSuggestion(
            type="analogous",
            colors=_rotated(h, s, l, (-60, -30, 30, 60)),
            description="Harmonious colours for backgrounds and sections",
            confidence=0.85,
            suitable_for=["backgrounds", "sections", "cards"],
        ))
    if purpose == "brand":
        suggestions.append(ColorSuggestion(
            type="monochromatic",
            colors=monochromatic(h, s, l),
            description="A monochromatic set for a consistent identity",
            confidence=0.95,
            suitable_for=["logo", "visual identity", "marketing material"],
        ))

    return sorted(suggestions, key=lambda item: item.confidence, reverse=True)
