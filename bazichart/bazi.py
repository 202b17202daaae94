"""
BaZi (Four Pillars of Destiny) computation engine.

Handles:
- Reference instant to BaZi pillar conversion (solar-term months, Li Chun years)
- Hidden stems, Na Yin and void (Xun Kong) flags
- Ten Gods relationship mapping
- Deity star detection
- Luck cycle computation

Nothing here interprets a chart; tags and distributions live in analysis.py.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional

from bazichart.astro_calendar import (
    find_nearest_jie,
    julian_day,
    julian_day_number,
    li_chun,
    month_branch_index,
    sun_longitude,
)

logger = logging.getLogger(__name__)

# Dates the deriver accepts. Anything outside is rejected as invalid input.
MIN_DATE = date(1900, 1, 1)
MAX_DATE = date(2100, 12, 31)

POSITIONS = ("year", "month", "day", "hour")
GENDERS = ("male", "female")


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"

    @property
    def title(self) -> str:
        return self.value.capitalize()


class Stem(Enum):
    """The 10 Heavenly Stems, in cycle order."""

    JIA = (0, "甲", "Jia", Element.WOOD, Polarity.YANG)
    YI = (1, "乙", "Yi", Element.WOOD, Polarity.YIN)
    BING = (2, "丙", "Bing", Element.FIRE, Polarity.YANG)
    DING = (3, "丁", "Ding", Element.FIRE, Polarity.YIN)
    WU = (4, "戊", "Wu", Element.EARTH, Polarity.YANG)
    JI = (5, "己", "Ji", Element.EARTH, Polarity.YIN)
    GENG = (6, "庚", "Geng", Element.METAL, Polarity.YANG)
    XIN = (7, "辛", "Xin", Element.METAL, Polarity.YIN)
    REN = (8, "壬", "Ren", Element.WATER, Polarity.YANG)
    GUI = (9, "癸", "Gui", Element.WATER, Polarity.YIN)

    def __init__(self, index, chinese, pinyin, element, polarity):
        self.index = index
        self.chinese = chinese
        self.pinyin = pinyin
        self.element = element
        self.polarity = polarity

    @classmethod
    def at(cls, index: int) -> "Stem":
        return HEAVENLY_STEMS[index % 10]

    def __str__(self):
        return f"{self.pinyin} ({self.polarity.value} {self.element.value})"


class Branch(Enum):
    """The 12 Earthly Branches. Hidden stems are ordered main, middle, residual qi."""

    ZI = (0, "子", "Zi", "Rat", Element.WATER, Polarity.YANG, (Stem.GUI,))
    CHOU = (1, "丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, (Stem.JI, Stem.GUI, Stem.XIN))
    YIN = (2, "寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, (Stem.JIA, Stem.BING, Stem.WU))
    MAO = (3, "卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, (Stem.YI,))
    CHEN = (4, "辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, (Stem.WU, Stem.YI, Stem.GUI))
    SI = (5, "巳", "Si", "Snake", Element.FIRE, Polarity.YIN, (Stem.BING, Stem.WU, Stem.GENG))
    WU = (6, "午", "Wu", "Horse", Element.FIRE, Polarity.YANG, (Stem.DING, Stem.JI))
    WEI = (7, "未", "Wei", "Goat", Element.EARTH, Polarity.YIN, (Stem.JI, Stem.DING, Stem.YI))
    SHEN = (8, "申", "Shen", "Monkey", Element.METAL, Polarity.YANG, (Stem.GENG, Stem.REN, Stem.WU))
    YOU = (9, "酉", "You", "Rooster", Element.METAL, Polarity.YIN, (Stem.XIN,))
    XU = (10, "戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, (Stem.WU, Stem.XIN, Stem.DING))
    HAI = (11, "亥", "Hai", "Pig", Element.WATER, Polarity.YIN, (Stem.REN, Stem.JIA))

    def __init__(self, index, chinese, pinyin, animal, element, polarity, hidden_stems):
        self.index = index
        self.chinese = chinese
        self.pinyin = pinyin
        self.animal = animal
        self.element = element
        self.polarity = polarity
        self.hidden_stems = hidden_stems

    @classmethod
    def at(cls, index: int) -> "Branch":
        return EARTHLY_BRANCHES[index % 12]

    def __str__(self):
        return f"{self.pinyin} ({self.animal})"


HEAVENLY_STEMS = list(Stem)
EARTHLY_BRANCHES = list(Branch)

STEM_BY_CHINESE = {s.chinese: s for s in Stem}
BRANCH_BY_CHINESE = {b.chinese: b for b in Branch}


def sexagenary_index(stem: Stem, branch: Branch) -> int:
    """Position (0-59) of a stem/branch pair in the 60-term cycle, Jia Zi = 0."""
    return (6 * stem.index - 5 * branch.index) % 60


# ============================================================
# NA YIN (纳音): one sound element per pair of cycle positions
# ============================================================

@dataclass(frozen=True)
class NaYin:
    chinese: str
    name: str
    element: Element


NA_YIN = [
    NaYin("海中金", "Sea Metal", Element.METAL),                  # Jia Zi, Yi Chou
    NaYin("炉中火", "Furnace Fire", Element.FIRE),                # Bing Yin, Ding Mao
    NaYin("大林木", "Great Forest Wood", Element.WOOD),
    NaYin("路旁土", "Roadside Earth", Element.EARTH),
    NaYin("剑锋金", "Sword Edge Metal", Element.METAL),
    NaYin("山头火", "Mountain Top Fire", Element.FIRE),
    NaYin("涧下水", "Stream Water", Element.WATER),
    NaYin("城头土", "City Wall Earth", Element.EARTH),
    NaYin("白蜡金", "White Wax Metal", Element.METAL),
    NaYin("杨柳木", "Willow Wood", Element.WOOD),
    NaYin("泉中水", "Spring Water", Element.WATER),
    NaYin("屋上土", "Rooftop Earth", Element.EARTH),
    NaYin("霹雳火", "Thunderbolt Fire", Element.FIRE),
    NaYin("松柏木", "Pine Wood", Element.WOOD),
    NaYin("长流水", "Long River Water", Element.WATER),
    NaYin("沙中金", "Sand Metal", Element.METAL),
    NaYin("山下火", "Foothill Fire", Element.FIRE),
    NaYin("平地木", "Flatland Wood", Element.WOOD),
    NaYin("壁上土", "Wall Earth", Element.EARTH),
    NaYin("金箔金", "Gold Foil Metal", Element.METAL),
    NaYin("覆灯火", "Lamp Fire", Element.FIRE),
    NaYin("天河水", "Heavenly River Water", Element.WATER),
    NaYin("大驿土", "Post Road Earth", Element.EARTH),
    NaYin("钗钏金", "Hairpin Metal", Element.METAL),
    NaYin("桑柘木", "Mulberry Wood", Element.WOOD),
    NaYin("大溪水", "Great Stream Water", Element.WATER),
    NaYin("沙中土", "Sand Earth", Element.EARTH),
    NaYin("天上火", "Heavenly Fire", Element.FIRE),
    NaYin("石榴木", "Pomegranate Wood", Element.WOOD),
    NaYin("大海水", "Great Sea Water", Element.WATER),             # Ren Xu, Gui Hai
]


def na_yin(stem: Stem, branch: Branch) -> NaYin:
    return NA_YIN[sexagenary_index(stem, branch) // 2]


def void_branches(stem: Stem, branch: Branch) -> tuple[Branch, Branch]:
    """
    The two void (空亡 Xun Kong) branches of the ten-day decade a pillar sits in.

    Each decade starts on a Jia stem and pairs 10 branches; the 2 branches
    left over are void. Jia Zi decade → Xu, Hai.
    """
    decade_start = sexagenary_index(stem, branch) - stem.index
    return Branch.at(decade_start + 10), Branch.at(decade_start + 11)


# ============================================================
# TEN GODS (十神) RELATIONSHIP MAPPING
# ============================================================

class GodCategory(Enum):
    PEER = "peer"
    RESOURCE = "resource"
    OUTPUT = "output"
    WEALTH = "wealth"
    OFFICER = "officer"


class TenGod(Enum):
    COMPANION = ("Companion", "比肩", GodCategory.PEER)
    ROB_WEALTH = ("Rob Wealth", "劫财", GodCategory.PEER)
    INDIRECT_RESOURCE = ("Indirect Resource", "偏印", GodCategory.RESOURCE)
    DIRECT_RESOURCE = ("Direct Resource", "正印", GodCategory.RESOURCE)
    EATING_GOD = ("Eating God", "食神", GodCategory.OUTPUT)
    HURTING_OFFICER = ("Hurting Officer", "伤官", GodCategory.OUTPUT)
    INDIRECT_WEALTH = ("Indirect Wealth", "偏财", GodCategory.WEALTH)
    DIRECT_WEALTH = ("Direct Wealth", "正财", GodCategory.WEALTH)
    SEVEN_KILLINGS = ("Seven Killings", "七杀", GodCategory.OFFICER)
    DIRECT_OFFICER = ("Direct Officer", "正官", GodCategory.OFFICER)

    def __init__(self, label, chinese, category):
        self.label = label
        self.chinese = chinese
        self.category = category

    def __str__(self):
        return f"{self.label} ({self.chinese})"


TEN_GODS = {
    # (relationship, same_polarity): god
    ("same", True): TenGod.COMPANION,
    ("same", False): TenGod.ROB_WEALTH,
    ("produces_me", True): TenGod.INDIRECT_RESOURCE,
    ("produces_me", False): TenGod.DIRECT_RESOURCE,
    ("i_produce", True): TenGod.EATING_GOD,
    ("i_produce", False): TenGod.HURTING_OFFICER,
    ("i_control", True): TenGod.INDIRECT_WEALTH,
    ("i_control", False): TenGod.DIRECT_WEALTH,
    ("controls_me", True): TenGod.SEVEN_KILLINGS,
    ("controls_me", False): TenGod.DIRECT_OFFICER,
}

# Production cycle: Wood → Fire → Earth → Metal → Water → Wood
PRODUCTION_CYCLE = {
    Element.WOOD: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.METAL,
    Element.METAL: Element.WATER,
    Element.WATER: Element.WOOD,
}

# Control cycle: Wood → Earth → Water → Fire → Metal → Wood
CONTROL_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}


def element_relationship(day_master_element: Element, other_element: Element) -> str:
    """Determine the elemental relationship from DM's perspective."""
    if day_master_element == other_element:
        return "same"
    elif PRODUCTION_CYCLE[other_element] == day_master_element:
        return "produces_me"
    elif PRODUCTION_CYCLE[day_master_element] == other_element:
        return "i_produce"
    elif CONTROL_CYCLE[day_master_element] == other_element:
        return "i_control"
    elif CONTROL_CYCLE[other_element] == day_master_element:
        return "controls_me"
    else:
        raise ValueError(f"No valid relationship between {day_master_element} and {other_element}")


def ten_god(day_master: Stem, other: Stem) -> TenGod:
    """Ten God of `other` as seen from the Day Master."""
    relationship = element_relationship(day_master.element, other.element)
    same_polarity = day_master.polarity == other.polarity
    return TEN_GODS[(relationship, same_polarity)]


# ============================================================
# PILLAR AND CHART STRUCTURES
# ============================================================

@dataclass(frozen=True)
class Pillar:
    position: str  # "year", "month", "day", "hour"
    stem: Stem
    branch: Branch
    ten_god: Optional[TenGod] = None  # relative to the Day Master; None on the day pillar
    is_void: bool = False

    @property
    def hidden_stems(self) -> tuple[Stem, ...]:
        return self.branch.hidden_stems

    @property
    def na_yin(self) -> NaYin:
        return na_yin(self.stem, self.branch)

    @property
    def element(self) -> Element:
        return self.stem.element

    @property
    def polarity(self) -> Polarity:
        return self.stem.polarity

    @property
    def chinese(self) -> str:
        return f"{self.stem.chinese}{self.branch.chinese}"

    def __str__(self):
        return f"{self.stem.pinyin} {self.branch.pinyin} ({self.stem.polarity.value} {self.stem.element.value} {self.branch.animal})"

    def to_dict(self, day_master: Optional[Stem] = None):
        hidden = []
        for hidden_stem in self.hidden_stems:
            entry = {
                "stem": hidden_stem.chinese,
                "pinyin": hidden_stem.pinyin,
                "element": hidden_stem.element.value,
            }
            if day_master is not None:
                entry["tenGod"] = ten_god(day_master, hidden_stem).label
            hidden.append(entry)
        return {
            "heavenlyStem": self.stem.chinese,
            "earthlyBranch": self.branch.chinese,
            "pinyin": f"{self.stem.pinyin} {self.branch.pinyin}",
            "animal": self.branch.animal,
            "fiveElements": self.stem.element.value,
            "branchElement": self.branch.element.value,
            "yinYang": self.stem.polarity.value,
            "tenGods": self.ten_god.label if self.ten_god else "Day Master",
            "hiddenStems": hidden,
            "nayin": self.na_yin.name,
            "nayinChinese": self.na_yin.chinese,
            "empty": self.is_void,
        }


@dataclass(frozen=True)
class LuckCycle:
    age: int
    start_year: int
    stem: Stem
    branch: Branch

    def to_dict(self):
        return {
            "age": self.age,
            "heavenlyStem": self.stem.chinese,
            "earthlyBranch": self.branch.chinese,
            "pinyin": f"{self.stem.pinyin} {self.branch.pinyin}",
            "period": f"{self.start_year}-{self.start_year + 9}",
        }


@dataclass(frozen=True)
class Chart:
    """A complete natal chart. The four pillars are always present together."""

    gender: str
    solar_datetime: datetime  # wall clock at the birthplace
    pillars: tuple[Pillar, Pillar, Pillar, Pillar]
    deity_stars: tuple[str, ...] = ()
    luck_cycles: tuple[LuckCycle, ...] = ()
    void_branches: tuple[Branch, ...] = field(default=())

    def __post_init__(self):
        if tuple(p.position for p in self.pillars) != POSITIONS:
            raise ValueError("A chart needs exactly the year, month, day and hour pillars")

    @property
    def year(self) -> Pillar:
        return self.pillars[0]

    @property
    def month(self) -> Pillar:
        return self.pillars[1]

    @property
    def day(self) -> Pillar:
        return self.pillars[2]

    @property
    def hour(self) -> Pillar:
        return self.pillars[3]

    @property
    def day_master(self) -> Stem:
        return self.day.stem

    @property
    def zodiac(self) -> str:
        return self.year.branch.animal

    @property
    def eight_characters(self) -> str:
        return " ".join(p.chinese for p in self.pillars)

    @property
    def ten_gods(self) -> list[TenGod]:
        return [p.ten_god for p in self.pillars if p.ten_god is not None]

    def to_dict(self):
        return {
            "gender": self.gender,
            "solarCalendar": self.solar_datetime.strftime("%Y-%m-%d %H:%M"),
            "eightCharacters": self.eight_characters,
            "zodiac": self.zodiac,
            "dayMaster": self.day_master.chinese,
            "dayMasterDescription": str(self.day_master),
            "fourPillars": {
                p.position: p.to_dict(self.day_master) for p in self.pillars
            },
            "deityStars": list(self.deity_stars),
            "luckCycles": [lc.to_dict() for lc in self.luck_cycles],
            "emptyBranches": [b.chinese for b in self.void_branches],
        }


# ============================================================
# PILLAR COMPUTATION
# ============================================================

def year_pillar(solar_year: int) -> Pillar:
    """
    Compute the Year Pillar for a BaZi (Li Chun to Li Chun) year.

    Year 4 CE was Jia Zi, the start of the cycle.
    """
    return Pillar("year", Stem.at(solar_year - 4), Branch.at(solar_year - 4))


def month_pillar(year_stem_index: int, month_branch: int) -> Pillar:
    """
    Compute the Month Pillar using the Five Tigers Escape (Wu Hu Dun) formula.

    The month branch is determined by solar terms.
    The month stem is derived from the year stem:
    - Year stem Jia/Ji → month 1 stem starts at Bing
    - Year stem Yi/Geng → month 1 stem starts at Wu
    - Year stem Bing/Xin → month 1 stem starts at Geng
    - Year stem Ding/Ren → month 1 stem starts at Ren
    - Year stem Wu/Gui → month 1 stem starts at Jia

    Month 1 (Tiger/Yin) has branch index 2.
    """
    tiger_start_stem = (year_stem_index % 5) * 2 + 2
    months_from_tiger = (month_branch - 2) % 12
    return Pillar("month", Stem.at(tiger_start_stem + months_from_tiger), Branch.at(month_branch))


# 1949-10-01 was a Jia Zi day
REFERENCE_DAY_JDN = 2433191


def day_pillar(day: date) -> Pillar:
    """
    Compute the Day Pillar from the continuous Julian Day Number.

    The 60-day cycle has run unbroken for millennia, so the index is the
    day count from a reference Jia Zi day, modulo 60.
    """
    jdn = julian_day_number(day.year, day.month, day.day)
    sexagenary = (jdn - REFERENCE_DAY_JDN) % 60
    return Pillar("day", Stem.at(sexagenary), Branch.at(sexagenary))


def hour_branch_index(hour: int) -> int:
    """
    Chinese hours (shi chen) are 2-hour blocks:
    23:00-00:59 = Zi (Rat) = 0, 01:00-02:59 = Chou (Ox) = 1, ...
    21:00-22:59 = Hai (Pig) = 11
    """
    return ((hour + 1) // 2) % 12


def hour_pillar(day_stem_index: int, hour: int) -> Pillar:
    """
    Compute the Hour Pillar using the Five Rats Escape (Wu Shu Dun) formula.

    Jia/Ji day → Jia Zi hour, Yi/Geng → Bing Zi, Bing/Xin → Wu Zi,
    Ding/Ren → Geng Zi, Wu/Gui → Ren Zi.
    """
    branch_index = hour_branch_index(hour)
    zi_start_stem = (day_stem_index % 5) * 2
    return Pillar("hour", Stem.at(zi_start_stem + branch_index), Branch.at(branch_index))


# ============================================================
# DEITY STARS (神煞)
# ============================================================

# Keyed by day stem index → branch indices that carry the star
NOBLEMAN = {0: (1, 7), 4: (1, 7), 6: (1, 7), 1: (0, 8), 5: (0, 8),
            2: (11, 9), 3: (11, 9), 7: (2, 6), 8: (3, 5), 9: (3, 5)}
ACADEMIC = {0: (5,), 1: (6,), 2: (8,), 3: (9,), 4: (8,),
            5: (9,), 6: (11,), 7: (0,), 8: (2,), 9: (3,)}
PROSPERITY = {0: (2,), 1: (3,), 2: (5,), 3: (6,), 4: (5,),
              5: (6,), 6: (8,), 7: (9,), 8: (11,), 9: (0,)}
YANG_BLADE = {0: (3,), 2: (6,), 4: (6,), 6: (9,), 8: (0,)}

# Keyed by the trine (三合) a year or day branch belongs to
TRINES = {
    "water": (8, 0, 4),  # Shen-Zi-Chen
    "fire": (2, 6, 10),  # Yin-Wu-Xu
    "metal": (5, 9, 1),  # Si-You-Chou
    "wood": (11, 3, 7),  # Hai-Mao-Wei
}
PEACH_BLOSSOM = {"water": 9, "fire": 3, "metal": 6, "wood": 0}
TRAVELLING_HORSE = {"water": 2, "fire": 8, "metal": 11, "wood": 5}
CANOPY = {"water": 4, "fire": 10, "metal": 1, "wood": 7}

STEM_STARS = [
    ("Nobleman Star", NOBLEMAN),
    ("Academic Star", ACADEMIC),
    ("Prosperity Star", PROSPERITY),
    ("Yang Blade Star", YANG_BLADE),
]
TRINE_STARS = [
    ("Peach Blossom Star", PEACH_BLOSSOM),
    ("Travelling Horse Star", TRAVELLING_HORSE),
    ("Canopy Star", CANOPY),
]


def _trine_of(branch: Branch) -> str:
    for name, members in TRINES.items():
        if branch.index in members:
            return name
    raise ValueError(f"Branch {branch} belongs to no trine")


def find_deity_stars(pillars: list[Pillar]) -> list[str]:
    """
    Flag deity stars present in the chart, in catalog order.

    Day-stem stars hit on any pillar branch. Trine stars are read from the
    year and day branches and hit on any other pillar's branch.
    """
    day_stem = pillars[2].stem
    branches = [p.branch.index for p in pillars]
    stars = []

    for name, table in STEM_STARS:
        if any(b in table.get(day_stem.index, ()) for b in branches):
            stars.append(name)

    for name, table in TRINE_STARS:
        for ref in (0, 2):  # year, day
            target = table[_trine_of(pillars[ref].branch)]
            if any(b == target for i, b in enumerate(branches) if i != ref):
                stars.append(name)
                break

    return stars


# ============================================================
# LUCK CYCLE COMPUTATION
# ============================================================

def compute_luck_cycles(year_stem: Stem, month: Pillar, gender: str,
                        birth_ut: datetime, birth_year: int,
                        num_cycles: int = 8) -> list[LuckCycle]:
    """
    Compute Luck Cycles (大运 Da Yun).

    Direction of count depends on gender + year stem polarity:
    - Yang stem year + Male OR Yin stem year + Female → count FORWARD
    - Yang stem year + Female OR Yin stem year + Male → count BACKWARD

    Starting age is the distance from birth to the next/previous Jie
    (solar term boundary), divided by 3 (3 days ≈ 1 year).
    """
    year_yang = year_stem.polarity == Polarity.YANG
    forward = (year_yang and gender == "male") or (not year_yang and gender == "female")

    birth_jd = julian_day(birth_ut)
    nearest_jie_jd = find_nearest_jie(birth_jd, birth_ut.year, forward=forward)
    start_age = round(abs(nearest_jie_jd - birth_jd) / 3)

    step = 1 if forward else -1
    cycles = []
    for i in range(num_cycles):
        offset = step * (i + 1)
        age = start_age + i * 10
        cycles.append(LuckCycle(
            age=age,
            start_year=birth_year + age,
            stem=Stem.at(month.stem.index + offset),
            branch=Branch.at(month.branch.index + offset),
        ))
    return cycles


# ============================================================
# FULL CHART COMPUTATION
# ============================================================

def validate_birth(solar_datetime: datetime, gender: str) -> None:
    if not MIN_DATE <= solar_datetime.date() <= MAX_DATE:
        raise ValueError(
            f"Birth date {solar_datetime.date()} is outside the supported range "
            f"{MIN_DATE} to {MAX_DATE}"
        )
    if gender not in GENDERS:
        raise ValueError(f"Gender must be one of {GENDERS}, got {gender!r}")


def compute_chart(solar_datetime: datetime, universal_time: datetime,
                  gender: str) -> Chart:
    """
    Compute a full BaZi chart.

    Args:
        solar_datetime: wall-clock birth time at the birthplace (naive)
        universal_time: the same moment in UT, used only for solar terms
        gender: "male" or "female", determines luck cycle direction

    Returns:
        Chart with all four pillars, deity stars, luck cycles and voids.
    """
    validate_birth(solar_datetime, gender)

    # Year pillar: the BaZi year turns at Li Chun, not January 1
    solar_year = solar_datetime.year
    if julian_day(universal_time) < li_chun(solar_year):
        solar_year -= 1
    yp = year_pillar(solar_year)

    # Month pillar: branch from the Sun's longitude, stem by Five Tigers
    mp = month_pillar(yp.stem.index, month_branch_index(sun_longitude(universal_time)))

    # Day pillar changes at midnight
    dp = day_pillar(solar_datetime.date())

    # Late Zi hour (23:00) already belongs to the next day's Five Rats cycle
    rat_day = dp
    if solar_datetime.hour == 23:
        rat_day = day_pillar(solar_datetime.date() + timedelta(days=1))
    hp = hour_pillar(rat_day.stem.index, solar_datetime.hour)

    day_master = dp.stem
    voids = void_branches(dp.stem, dp.branch)

    def finish(p: Pillar, god: Optional[TenGod]) -> Pillar:
        return Pillar(p.position, p.stem, p.branch, ten_god=god,
                      is_void=p.branch in voids)

    pillars = (
        finish(yp, ten_god(day_master, yp.stem)),
        finish(mp, ten_god(day_master, mp.stem)),
        finish(dp, None),
        finish(hp, ten_god(day_master, hp.stem)),
    )

    logger.debug("Pillars for %s: %s", solar_datetime.isoformat(),
                 " ".join(p.chinese for p in pillars))

    return Chart(
        gender=gender,
        solar_datetime=solar_datetime,
        pillars=pillars,
        deity_stars=tuple(find_deity_stars(list(pillars))),
        luck_cycles=tuple(compute_luck_cycles(
            yp.stem, mp, gender, universal_time, solar_datetime.year)),
        void_branches=voids,
    )


if __name__ == "__main__":
    chart = compute_chart(datetime(1990, 1, 1, 0, 0), datetime(1990, 1, 1, 0, 0), "male")
    print(f"Eight characters: {chart.eight_characters}")
    print("Expected: 己巳 丙子 丙寅 戊子")
    for p in chart.pillars:
        print(f"  {p.position.capitalize():6s}: {p} | {p.na_yin.name} | void={p.is_void}")
    print(f"Deity stars: {', '.join(chart.deity_stars) or '-'}")
    for lc in chart.luck_cycles:
        print(f"  Age {lc.age}: {lc.stem.pinyin} {lc.branch.pinyin}")
