"""
kolab_core/domain/catalog.py

房源目录 - 房产、房间与公共区域的参考数据

目录在进程启动时加载一次，作为不可变对象显式注入到需要房间元数据的组件，
不使用模块级常量，便于多租户与测试配置。
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml

from kolab_core.domain.records import Room

logger = logging.getLogger(__name__)

LOCATION_ROOM = "room"
LOCATION_COMMON = "common"


class CatalogError(ValueError):
    """目录数据不合法"""


@dataclass(frozen=True)
class Location:
    """
    可维修位置：房间或公共区域

    Attributes:
        id: 位置 ID（房间 ID 与公共区域 ID 共用命名空间）
        name: 显示名称
        type: 房型或区域类型标签
        location_type: "room" 或 "common"
        property_id: 所属房产 ID
        property_name: 所属房产名称
    """

    id: str
    name: str
    type: str
    location_type: str
    property_id: str
    property_name: str

    @property
    def label(self) -> str:
        return f"{self.property_name} - {self.name}"


@dataclass(frozen=True)
class Property:
    """房产：若干房间与公共区域"""

    id: str
    name: str
    rooms: Tuple[Room, ...] = field(default_factory=tuple)
    common_areas: Tuple[Location, ...] = field(default_factory=tuple)


class PropertyCatalog:
    """
    不可变房源目录

    Example:
        >>> catalog = PropertyCatalog.from_yaml("properties.yaml")
        >>> catalog.get_room("T1").property_name
        'Townhouse'
    """

    def __init__(self, properties: Iterable[Property]):
        self._properties: Tuple[Property, ...] = tuple(properties)
        self._rooms: Tuple[Room, ...] = tuple(room for prop in self._properties for room in prop.rooms)

        locations: List[Location] = []
        for prop in self._properties:
            for room in prop.rooms:
                locations.append(Location(
                    id=room.id,
                    name=room.name,
                    type=room.type,
                    location_type=LOCATION_ROOM,
                    property_id=prop.id,
                    property_name=prop.name,
                ))
            locations.extend(prop.common_areas)
        self._locations: Tuple[Location, ...] = tuple(locations)

        self._property_index = self._index(self._properties, "property")
        self._room_index = self._index(self._rooms, "room")
        self._location_index = self._index(self._locations, "location")

    @staticmethod
    def _index(items, kind: str) -> Dict[str, Any]:
        index: Dict[str, Any] = {}
        for item in items:
            if not item.id:
                raise CatalogError(f"Catalog {kind} without id")
            if item.id in index:
                raise CatalogError(f"Duplicate {kind} id '{item.id}' in catalog")
            index[item.id] = item
        return index

    # ============== 构建 ==============

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PropertyCatalog":
        """
        由映射构建目录

        Args:
            data: {"properties": [{"id", "name", "rooms": [...], "common_areas": [...]}]}
        """
        if not isinstance(data, Mapping) or not isinstance(data.get("properties"), list):
            raise CatalogError("Catalog must contain a 'properties' list")

        properties = []
        for raw in data["properties"]:
            prop_id = str(raw.get("id") or "")
            prop_name = str(raw.get("name") or prop_id)
            rooms = tuple(
                Room(
                    id=str(r["id"]),
                    name=str(r.get("name") or r["id"]),
                    type=str(r.get("type") or ""),
                    property_id=prop_id,
                    property_name=prop_name,
                )
                for r in raw.get("rooms") or []
            )
            commons = tuple(
                Location(
                    id=str(c["id"]),
                    name=str(c.get("name") or c["id"]),
                    type=str(c.get("type") or "Common"),
                    location_type=LOCATION_COMMON,
                    property_id=prop_id,
                    property_name=prop_name,
                )
                for c in raw.get("common_areas") or []
            )
            properties.append(Property(id=prop_id, name=prop_name, rooms=rooms, common_areas=commons))
        return cls(properties)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PropertyCatalog":
        """从 YAML 文件加载目录"""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        catalog = cls.from_mapping(data or {})
        logger.info(f"Loaded catalog {path}: {len(catalog.properties)} properties, {len(catalog.rooms)} rooms")
        return catalog

    # ============== 查询 ==============

    @property
    def properties(self) -> Tuple[Property, ...]:
        return self._properties

    @property
    def rooms(self) -> Tuple[Room, ...]:
        """所有房间（按目录顺序展开）"""
        return self._rooms

    @property
    def locations(self) -> Tuple[Location, ...]:
        """房间 + 公共区域"""
        return self._locations

    def get_property(self, property_id: str) -> Optional[Property]:
        return self._property_index.get(property_id)

    def get_room(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        return self._room_index.get(room_id)

    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        if location_id is None:
            return None
        return self._location_index.get(location_id)

    def has_room(self, room_id: Optional[str]) -> bool:
        return room_id in self._room_index

    def __len__(self) -> int:
        return len(self._rooms)


__all__ = [
    "LOCATION_ROOM",
    "LOCATION_COMMON",
    "CatalogError",
    "Location",
    "Property",
    "PropertyCatalog",
]
