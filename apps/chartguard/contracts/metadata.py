"""契约基类与 JSONSchema 元数据。

每个契约模型在定义时按 ``schema_name()`` 登记到全局注册表，导出接口据此
按名称查找模型；导出的 JSONSchema 统一带有 ``$id``、``$schema`` 与 ``version``，
所有对象类型均禁止额外字段。
"""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

SCHEMA_VERSION: str = "1.0.0"
"""契约 Schema 的版本号，所有模型保持一致，便于渲染端做兼容判断。"""

SCHEMA_BASE_URI: str = "https://schemas.chartguard.local/contracts"
"""所有契约 Schema `$id` 的统一前缀。"""

JSON_SCHEMA_DIALECT: str = "https://json-schema.org/draft/2020-12/schema"

_CONTRACT_REGISTRY: Dict[str, type] = {}


def schema_uri(schema_name: str) -> str:
    """拼接契约的 `$id`。"""

    return f"{SCHEMA_BASE_URI}/{schema_name}.json"


def registered_contracts() -> Dict[str, type]:
    """返回按 schema_name 索引的契约模型副本，保持定义顺序。"""

    return dict(_CONTRACT_REGISTRY)


def _forbid_additional_properties(node: Any) -> None:
    """递归为所有对象类型补充 `additionalProperties: false`，字典字段除外。"""

    if isinstance(node, dict):
        if node.get("type") == "object" and "properties" in node and "additionalProperties" not in node:
            node["additionalProperties"] = False
        for value in node.values():
            _forbid_additional_properties(value)
    elif isinstance(node, list):
        for item in node:
            _forbid_additional_properties(item)


class ContractModel(BaseModel):
    """所有契约模型的基类，统一禁止额外字段并注入 JSONSchema 元数据。"""

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        name = cls.schema_name()
        existing = _CONTRACT_REGISTRY.get(name)
        if existing is not None and existing.__qualname__ != cls.__qualname__:
            message = f"契约名称 {name} 已被 {existing.__qualname__} 占用。"
            raise TypeError(message)
        _CONTRACT_REGISTRY[name] = cls

    @classmethod
    def schema_name(cls) -> str:
        """返回模型对应的 Schema 名称，供 `$id` 拼接使用。"""

        msg = f"{cls.__name__} 未实现 schema_name() 方法。"
        raise NotImplementedError(msg)

    @classmethod
    def model_json_schema(cls, *args: Any, **kwargs: Any) -> dict[str, Any]:
        """扩展默认的 Schema 输出，追加契约元数据。"""

        schema = super().model_json_schema(*args, **kwargs)
        schema.update(
            {
                "$id": schema_uri(cls.schema_name()),
                "$schema": JSON_SCHEMA_DIALECT,
                "version": SCHEMA_VERSION,
            },
        )
        _forbid_additional_properties(schema)
        return schema
