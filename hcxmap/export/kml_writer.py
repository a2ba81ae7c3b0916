"""
KML export of located access points, for Google Earth and friends.
"""

import xml.etree.ElementTree as ET
from typing import Iterable

from hcxmap.analysis.types import AccessPoint
from hcxmap.parsers.security import SecurityKind
from hcxmap.utils.log import get_logger
from hcxmap.utils.validate import AccessPointRecord

logger = get_logger(__name__)

KML_NS = "http://www.opengis.net/kml/2.2"

# style id -> icon colour (aabbggrr)
STYLES = {
    "open": "ff00ff00",
    "cracked": "ff00ffff",
    "secured": "ff0000ff",
}


def style_for(ap: AccessPoint) -> str:
    if ap.password is not None:
        return "cracked"
    if ap.security in (SecurityKind.OPEN, SecurityKind.WEP):
        return "open"
    return "secured"


def _description(rec: AccessPointRecord) -> str:
    lines = [
        f"MAC: {rec.mac}",
        f"Security: {rec.security}",
        f"Channel: {rec.channel if rec.channel is not None else '?'}",
        f"Method: {rec.method} ({rec.n_obs} observations)",
        f"RSSI: min {rec.min_rssi} / max {rec.max_rssi} / avg {rec.avg_rssi:.1f} dBm",
    ]
    if rec.vendor:
        lines.append(f"Vendor: {rec.vendor}")
    if rec.password:
        lines.append(f"Password: {rec.password}")
    return "\n".join(lines)


def build_kml(aps: Iterable[AccessPoint], name: str = "WiFi access points") -> ET.ElementTree:
    """
    Build a KML document with one Placemark per AP that has an estimate.
    """
    ET.register_namespace("", KML_NS)
    kml = ET.Element(f"{{{KML_NS}}}kml")
    doc = ET.SubElement(kml, f"{{{KML_NS}}}Document")
    ET.SubElement(doc, f"{{{KML_NS}}}name").text = name

    for style_id, colour in STYLES.items():
        style = ET.SubElement(doc, f"{{{KML_NS}}}Style", id=style_id)
        icon = ET.SubElement(style, f"{{{KML_NS}}}IconStyle")
        ET.SubElement(icon, f"{{{KML_NS}}}color").text = colour

    for ap in aps:
        if ap.estimated_position is None:
            continue
        rec = AccessPointRecord.from_access_point(ap)
        pm = ET.SubElement(doc, f"{{{KML_NS}}}Placemark")
        ET.SubElement(pm, f"{{{KML_NS}}}name").text = rec.ssid or rec.mac
        ET.SubElement(pm, f"{{{KML_NS}}}description").text = _description(rec)
        ET.SubElement(pm, f"{{{KML_NS}}}styleUrl").text = f"#{style_for(ap)}"
        point = ET.SubElement(pm, f"{{{KML_NS}}}Point")
        ET.SubElement(point, f"{{{KML_NS}}}coordinates").text = (
            f"{rec.longitude:.6f},{rec.latitude:.6f},0"
        )
    return ET.ElementTree(kml)


def export_to_kml(aps: Iterable[AccessPoint], filename: str) -> None:
    tree = build_kml(aps)
    ET.indent(tree)
    tree.write(filename, encoding="utf-8", xml_declaration=True)
    logger.info("Exported results to %s", filename)
