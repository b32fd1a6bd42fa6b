from abc import ABC
from typing import TypeVar, Generic, Optional, List, Dict, Any, Type
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key
from pydantic import BaseModel

T = TypeVar("T")
SchemaType = TypeVar("SchemaType", bound=BaseModel)


class BaseRepository(Generic[T, SchemaType], ABC):
    """모든 리포지토리의 베이스 클래스 - Pydantic 응답 보장

    커밋 여부는 호출자가 결정합니다. 원장 엔진은 unit of work 안에서
    commit=False로 호출하고, 트랜잭션 경계(커밋/롤백)는 엔진이 관리합니다.
    """

    def __init__(
        self, model_class: Type[T], schema_class: Type[SchemaType], db: Session
    ):
        self.model_class = model_class
        self.schema_class = schema_class
        self.db = db

    def _to_schema(self, model_instance: Any) -> Optional[SchemaType]:
        """SQLAlchemy 모델을 Pydantic 스키마로 변환"""
        if model_instance is None:
            return None
        return self.schema_class.model_validate(model_instance)

    def _to_schemas(self, model_instances: List[Any]) -> List[SchemaType]:
        results = []
        for instance in model_instances:
            schema_instance = self._to_schema(instance)
            if schema_instance is not None:
                results.append(schema_instance)
        return results

    def _expire_cached(self, instance_id: Any) -> None:
        """벌크 UPDATE 이후 identity map에 남은 인스턴스를 만료시켜 다음 접근 시 재조회"""
        key = identity_key(self.model_class, instance_id)
        cached = self.db.identity_map.get(key)
        if cached is not None:
            self.db.expire(cached)

    def _conditional_update(self, instance_id: Any, *conditions, **values) -> bool:
        """
        조건부 UPDATE (compare-and-swap)

        WHERE id = :id AND <conditions> 에 해당하는 행이 있을 때만 values를 적용합니다.
        경쟁 상황에서 정확히 하나의 호출만 True를 받습니다.
        """
        updated = (
            self.db.query(self.model_class)
            .filter(getattr(self.model_class, "id") == instance_id, *conditions)
            .update(values, synchronize_session=False)
        )
        self._expire_cached(instance_id)
        return updated == 1

    def get_model(self, id: Any, for_update: bool = False) -> Optional[T]:
        """ORM 인스턴스 조회 (엔진 내부용)"""
        query = self.db.query(self.model_class).filter(
            getattr(self.model_class, "id") == id
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_id(self, id: Any) -> Optional[SchemaType]:
        """ID로 조회 - Pydantic 스키마 반환"""
        return self._to_schema(self.get_model(id))

    def get_by_field(self, field_name: str, value: Any) -> Optional[SchemaType]:
        """특정 필드로 조회 - Pydantic 스키마 반환"""
        model_instance = (
            self.db.query(self.model_class)
            .filter(getattr(self.model_class, field_name) == value)
            .first()
        )
        return self._to_schema(model_instance)

    def create(self, commit: bool = True, **kwargs) -> Optional[SchemaType]:
        """새 레코드 생성 - Pydantic 스키마 반환"""
        return self._to_schema(self.create_model(commit=commit, **kwargs))

    def create_model(self, commit: bool = True, **kwargs) -> T:
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        try:
            self.db.flush()
            self.db.refresh(instance)
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise
        return instance

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """레코드 수 조회"""
        query = self.db.query(self.model_class)

        if filters:
            for key, value in filters.items():
                if hasattr(self.model_class, key):
                    query = query.filter(getattr(self.model_class, key) == value)

        return query.count()
