"""
Bundled demo clan, used when neither the remote API nor the local store
has data.

Five generations of the Lê lineage:
- P001 + P002 founding couple
- P003 married twice (F002, F003), each union with its own children
- P005 is a daughter of the line whose husband married in (F004)
- P007's branch is the one used for descendant deep links in demos
"""

from src.pedigree.models import Family, GraphSnapshot, Person, PersonProfile

# handle, name, gender, birth, death, patrilineal
_PEOPLE = [
    ("P001", "Lê Văn Tổ", "M", 1890, 1962, True),
    ("P002", "Nguyễn Thị Hoa", "F", 1895, 1970, False),
    ("P003", "Lê Văn An", "M", 1918, 1990, True),
    ("P004", "Trần Thị Bình", "F", 1920, 1950, False),
    ("P005", "Lê Thị Ba", "F", 1921, 2001, True),
    ("P006", "Hoàng Văn Dũng", "M", 1919, 1995, False),
    ("P007", "Lê Văn Chí", "M", 1925, 2010, True),
    ("P008", "Phạm Thị Cúc", "F", 1928, 2012, False),
    ("P009", "Lê Văn Đức", "M", 1942, None, True),
    ("P010", "Lê Thị Giang", "F", 1945, None, True),
    ("P011", "Lê Văn Hải", "M", 1955, None, True),
    ("P012", "Hoàng Văn Khoa", "M", 1948, None, False),
    ("P013", "Võ Thị Duyên", "F", 1930, 2015, False),
    ("P014", "Lê Văn Long", "M", 1952, None, True),
    ("P015", "Lê Thị Nga", "F", 1956, None, True),
    ("P016", "Đỗ Thị Em", "F", 1946, None, False),
    ("P017", "Bùi Thị Mai", "F", 1954, None, False),
    ("P018", "Lê Văn Phúc", "M", 1968, None, True),
    ("P019", "Lê Thị Sương", "F", 1971, None, True),
    ("P020", "Lê Văn Tâm", "M", 1980, None, True),
    ("P021", "Ngô Thị Quyên", "F", 1970, None, False),
    ("P022", "Lê Văn Uy", "M", 1995, None, True),
]

# handle, father, mother, children
_FAMILIES = [
    ("F001", "P001", "P002", ["P003", "P005", "P007"]),
    ("F002", "P003", "P004", ["P009", "P010"]),
    ("F003", "P003", "P008", ["P011"]),
    ("F004", "P006", "P005", ["P012"]),
    ("F005", "P007", "P013", ["P014", "P015"]),
    ("F006", "P009", "P016", ["P018", "P019"]),
    ("F007", "P014", "P017", ["P020"]),
    ("F008", "P018", "P021", ["P022"]),
]

_PROFILES = [
    PersonProfile(handle="P009", hometown="Huế", occupation="Teacher", phone="0905 111 222"),
    PersonProfile(handle="P014", hometown="Đà Nẵng", occupation="Engineer", email="long.le@example.com"),
    PersonProfile(handle="P020", current_address="Hà Nội", education="University of Hanoi"),
]


def sample_snapshot() -> GraphSnapshot:
    """Build the demo snapshot with back-references filled in."""
    own: dict[str, list[str]] = {}
    parent_of: dict[str, list[str]] = {}
    for handle, father, mother, children in _FAMILIES:
        for parent in (father, mother):
            own.setdefault(parent, []).append(handle)
        for child in children:
            parent_of.setdefault(child, []).append(handle)

    people = [
        Person(
            handle=handle,
            display_name=name,
            gender=gender,
            birth_year=birth,
            death_year=death,
            is_living=death is None,
            is_patrilineal=patrilineal,
            families=own.get(handle, []),
            parent_families=parent_of.get(handle, []),
        )
        for handle, name, gender, birth, death, patrilineal in _PEOPLE
    ]
    families = [
        Family(handle=handle, father_handle=father, mother_handle=mother, children=list(children))
        for handle, father, mother, children in _FAMILIES
    ]
    return GraphSnapshot(people=people, families=families)


def sample_profiles() -> list[PersonProfile]:
    return list(_PROFILES)
