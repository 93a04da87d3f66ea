# src/poligraph_rag/backend/utils/departments.py

"""
[Responsibility] French department reference table and the two resolvers the retrieval tiers need:
                 postal code -> department code, free-text name -> department code.
[Boundary] Static data; no knowledge-store access.
[Upstream] pattern handler `trouver_elu`, keyword geography sub-search.
[Downstream] Department code used as a mandate filter (Mandate.department_code).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .text import fold_accents


@dataclass(frozen=True)
class Department:
    code: str
    name: str
    region: str


DEPARTMENTS: Dict[str, Department] = {
    "01": Department(code="01", name="Ain", region="Auvergne-Rhône-Alpes"),
    "02": Department(code="02", name="Aisne", region="Hauts-de-France"),
    "03": Department(code="03", name="Allier", region="Auvergne-Rhône-Alpes"),
    "04": Department(code="04", name="Alpes-de-Haute-Provence", region="Provence-Alpes-Côte d'Azur"),
    "05": Department(code="05", name="Hautes-Alpes", region="Provence-Alpes-Côte d'Azur"),
    "06": Department(code="06", name="Alpes-Maritimes", region="Provence-Alpes-Côte d'Azur"),
    "07": Department(code="07", name="Ardèche", region="Auvergne-Rhône-Alpes"),
    "08": Department(code="08", name="Ardennes", region="Grand Est"),
    "09": Department(code="09", name="Ariège", region="Occitanie"),
    "10": Department(code="10", name="Aube", region="Grand Est"),
    "11": Department(code="11", name="Aude", region="Occitanie"),
    "12": Department(code="12", name="Aveyron", region="Occitanie"),
    "13": Department(code="13", name="Bouches-du-Rhône", region="Provence-Alpes-Côte d'Azur"),
    "14": Department(code="14", name="Calvados", region="Normandie"),
    "15": Department(code="15", name="Cantal", region="Auvergne-Rhône-Alpes"),
    "16": Department(code="16", name="Charente", region="Nouvelle-Aquitaine"),
    "17": Department(code="17", name="Charente-Maritime", region="Nouvelle-Aquitaine"),
    "18": Department(code="18", name="Cher", region="Centre-Val de Loire"),
    "19": Department(code="19", name="Corrèze", region="Nouvelle-Aquitaine"),
    "2A": Department(code="2A", name="Corse-du-Sud", region="Corse"),
    "2B": Department(code="2B", name="Haute-Corse", region="Corse"),
    "21": Department(code="21", name="Côte-d'Or", region="Bourgogne-Franche-Comté"),
    "22": Department(code="22", name="Côtes-d'Armor", region="Bretagne"),
    "23": Department(code="23", name="Creuse", region="Nouvelle-Aquitaine"),
    "24": Department(code="24", name="Dordogne", region="Nouvelle-Aquitaine"),
    "25": Department(code="25", name="Doubs", region="Bourgogne-Franche-Comté"),
    "26": Department(code="26", name="Drôme", region="Auvergne-Rhône-Alpes"),
    "27": Department(code="27", name="Eure", region="Normandie"),
    "28": Department(code="28", name="Eure-et-Loir", region="Centre-Val de Loire"),
    "29": Department(code="29", name="Finistère", region="Bretagne"),
    "30": Department(code="30", name="Gard", region="Occitanie"),
    "31": Department(code="31", name="Haute-Garonne", region="Occitanie"),
    "32": Department(code="32", name="Gers", region="Occitanie"),
    "33": Department(code="33", name="Gironde", region="Nouvelle-Aquitaine"),
    "34": Department(code="34", name="Hérault", region="Occitanie"),
    "35": Department(code="35", name="Ille-et-Vilaine", region="Bretagne"),
    "36": Department(code="36", name="Indre", region="Centre-Val de Loire"),
    "37": Department(code="37", name="Indre-et-Loire", region="Centre-Val de Loire"),
    "38": Department(code="38", name="Isère", region="Auvergne-Rhône-Alpes"),
    "39": Department(code="39", name="Jura", region="Bourgogne-Franche-Comté"),
    "40": Department(code="40", name="Landes", region="Nouvelle-Aquitaine"),
    "41": Department(code="41", name="Loir-et-Cher", region="Centre-Val de Loire"),
    "42": Department(code="42", name="Loire", region="Auvergne-Rhône-Alpes"),
    "43": Department(code="43", name="Haute-Loire", region="Auvergne-Rhône-Alpes"),
    "44": Department(code="44", name="Loire-Atlantique", region="Pays de la Loire"),
    "45": Department(code="45", name="Loiret", region="Centre-Val de Loire"),
    "46": Department(code="46", name="Lot", region="Occitanie"),
    "47": Department(code="47", name="Lot-et-Garonne", region="Nouvelle-Aquitaine"),
    "48": Department(code="48", name="Lozère", region="Occitanie"),
    "49": Department(code="49", name="Maine-et-Loire", region="Pays de la Loire"),
    "50": Department(code="50", name="Manche", region="Normandie"),
    "51": Department(code="51", name="Marne", region="Grand Est"),
    "52": Department(code="52", name="Haute-Marne", region="Grand Est"),
    "53": Department(code="53", name="Mayenne", region="Pays de la Loire"),
    "54": Department(code="54", name="Meurthe-et-Moselle", region="Grand Est"),
    "55": Department(code="55", name="Meuse", region="Grand Est"),
    "56": Department(code="56", name="Morbihan", region="Bretagne"),
    "57": Department(code="57", name="Moselle", region="Grand Est"),
    "58": Department(code="58", name="Nièvre", region="Bourgogne-Franche-Comté"),
    "59": Department(code="59", name="Nord", region="Hauts-de-France"),
    "60": Department(code="60", name="Oise", region="Hauts-de-France"),
    "61": Department(code="61", name="Orne", region="Normandie"),
    "62": Department(code="62", name="Pas-de-Calais", region="Hauts-de-France"),
    "63": Department(code="63", name="Puy-de-Dôme", region="Auvergne-Rhône-Alpes"),
    "64": Department(code="64", name="Pyrénées-Atlantiques", region="Nouvelle-Aquitaine"),
    "65": Department(code="65", name="Hautes-Pyrénées", region="Occitanie"),
    "66": Department(code="66", name="Pyrénées-Orientales", region="Occitanie"),
    "67": Department(code="67", name="Bas-Rhin", region="Grand Est"),
    "68": Department(code="68", name="Haut-Rhin", region="Grand Est"),
    "69": Department(code="69", name="Rhône", region="Auvergne-Rhône-Alpes"),
    "70": Department(code="70", name="Haute-Saône", region="Bourgogne-Franche-Comté"),
    "71": Department(code="71", name="Saône-et-Loire", region="Bourgogne-Franche-Comté"),
    "72": Department(code="72", name="Sarthe", region="Pays de la Loire"),
    "73": Department(code="73", name="Savoie", region="Auvergne-Rhône-Alpes"),
    "74": Department(code="74", name="Haute-Savoie", region="Auvergne-Rhône-Alpes"),
    "75": Department(code="75", name="Paris", region="Île-de-France"),
    "76": Department(code="76", name="Seine-Maritime", region="Normandie"),
    "77": Department(code="77", name="Seine-et-Marne", region="Île-de-France"),
    "78": Department(code="78", name="Yvelines", region="Île-de-France"),
    "79": Department(code="79", name="Deux-Sèvres", region="Nouvelle-Aquitaine"),
    "80": Department(code="80", name="Somme", region="Hauts-de-France"),
    "81": Department(code="81", name="Tarn", region="Occitanie"),
    "82": Department(code="82", name="Tarn-et-Garonne", region="Occitanie"),
    "83": Department(code="83", name="Var", region="Provence-Alpes-Côte d'Azur"),
    "84": Department(code="84", name="Vaucluse", region="Provence-Alpes-Côte d'Azur"),
    "85": Department(code="85", name="Vendée", region="Pays de la Loire"),
    "86": Department(code="86", name="Vienne", region="Nouvelle-Aquitaine"),
    "87": Department(code="87", name="Haute-Vienne", region="Nouvelle-Aquitaine"),
    "88": Department(code="88", name="Vosges", region="Grand Est"),
    "89": Department(code="89", name="Yonne", region="Bourgogne-Franche-Comté"),
    "90": Department(code="90", name="Territoire de Belfort", region="Bourgogne-Franche-Comté"),
    "91": Department(code="91", name="Essonne", region="Île-de-France"),
    "92": Department(code="92", name="Hauts-de-Seine", region="Île-de-France"),
    "93": Department(code="93", name="Seine-Saint-Denis", region="Île-de-France"),
    "94": Department(code="94", name="Val-de-Marne", region="Île-de-France"),
    "95": Department(code="95", name="Val-d'Oise", region="Île-de-France"),
    "971": Department(code="971", name="Guadeloupe", region="DOM-TOM"),
    "972": Department(code="972", name="Martinique", region="DOM-TOM"),
    "973": Department(code="973", name="Guyane", region="DOM-TOM"),
    "974": Department(code="974", name="La Réunion", region="DOM-TOM"),
    "976": Department(code="976", name="Mayotte", region="DOM-TOM"),
    "975": Department(code="975", name="Saint-Pierre-et-Miquelon", region="DOM-TOM"),
    "977": Department(code="977", name="Saint-Barthélemy", region="DOM-TOM"),
    "978": Department(code="978", name="Saint-Martin", region="DOM-TOM"),
    "986": Department(code="986", name="Wallis-et-Futuna", region="DOM-TOM"),
    "987": Department(code="987", name="Polynésie française", region="DOM-TOM"),
    "988": Department(code="988", name="Nouvelle-Calédonie", region="DOM-TOM"),
}

_POSTAL_RE = re.compile(r"^\d{5}$")


def _normalize_name(value: str) -> str:
    folded = fold_accents(str(value or "").lower())
    return re.sub(r"['\-]", " ", folded).strip()


_NAME_TO_CODE: List[Tuple[str, str]] = [
    (_normalize_name(dept.name), code) for code, dept in DEPARTMENTS.items()
]  # docstring: insertion order drives partial-match precedence


def get_department(code: Optional[str]) -> Optional[Department]:
    return DEPARTMENTS.get(str(code or "").strip().upper())


def department_from_postal_code(postal_code: str) -> Optional[str]:
    """
    Map a 5-digit postal code to a department code.

    Overseas codes (97xxx/98xxx) keep three digits, the rest keep two. Corsica postal codes
    (20xxx) cannot be split into 2A/2B from the code alone and resolve to nothing.
    """
    raw = str(postal_code or "").strip()
    if not _POSTAL_RE.match(raw):
        return None
    code = raw[:3] if raw.startswith(("97", "98")) else raw[:2]
    return code if code in DEPARTMENTS else None


def find_department_code(query: str) -> Optional[str]:
    """
    Resolve a department name (accent/case/hyphen-insensitive).

    Exact name first, then the first department whose name contains the query or is contained in it.
    """
    normalized = _normalize_name(query)
    if not normalized:
        return None

    for name, code in _NAME_TO_CODE:
        if name == normalized:
            return code

    for name, code in _NAME_TO_CODE:
        if normalized in name or name in normalized:
            return code

    return None
