"""기본 CRUD 레포지토리 — 모든 레포지토리의 부모 클래스.

Base CRUD Repository — Parent class for all domain repositories.
Provides generic read/create/update operations with company scoping and
the guarded conditional update used by every state transition.

Usage:
    class ContractRepository(BaseRepository[Contract]):
        def __init__(self) -> None:
            super().__init__(Contract)
"""

from typing import Any, Generic, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_engine.database import Base

# 제네릭 타입 변수 — SQLAlchemy 모델을 나타냄
# Generic type variable representing a SQLAlchemy model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """제네릭 CRUD 레포지토리.

    Generic repository providing common database operations.
    Queries are scoped by company_id when the model has the column and a
    scope is given.

    Attributes:
        model: SQLAlchemy 모델 클래스 (The SQLAlchemy model class)
    """

    def __init__(self, model: type[ModelType]) -> None:
        self.model: type[ModelType] = model

    async def get_by_id(
        self,
        db: AsyncSession,
        record_id: UUID,
        company_id: UUID | None = None,
    ) -> ModelType | None:
        """ID로 단일 레코드를 조회합니다.

        Retrieve a single record by its UUID.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            record_id: 조회할 레코드의 UUID (UUID of the record to retrieve)
            company_id: 회사 범위 필터, None이면 미적용 (Company scope; None skips filtering)

        Returns:
            ModelType | None: 조회된 레코드 또는 None (Found record or None)
        """
        query: Select = select(self.model).where(self.model.id == record_id)
        if company_id is not None and hasattr(self.model, "company_id"):
            query = query.where(self.model.company_id == company_id)

        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_fresh(
        self,
        db: AsyncSession,
        record_id: UUID,
    ) -> ModelType | None:
        """DB 값으로 다시 읽어옵니다.

        Reload a record, overwriting any stale copy in the session identity
        map. Used after Core-level UPDATE/UPSERT statements.
        """
        query: Select = (
            select(self.model)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_paginated(
        self,
        db: AsyncSession,
        query: Select,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[Sequence[ModelType], int]:
        """페이지네이션이 적용된 레코드 목록을 조회합니다.

        Retrieve a paginated list of records.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            query: 기본 SELECT 쿼리 (Base SELECT query)
            page: 현재 페이지 번호, 1부터 시작 (Current page number, 1-based)
            per_page: 페이지당 레코드 수 (Number of records per page)

        Returns:
            tuple[Sequence[ModelType], int]: (레코드 목록, 전체 개수)
        """
        count_query: Select = select(func.count()).select_from(query.subquery())
        total: int = (await db.execute(count_query)).scalar() or 0

        offset: int = (page - 1) * per_page
        result = await db.execute(query.offset(offset).limit(per_page))
        items: Sequence[ModelType] = result.scalars().all()

        return items, total

    async def create(
        self,
        db: AsyncSession,
        obj_data: dict[str, Any],
    ) -> ModelType:
        """새 레코드를 생성합니다.

        Create a new record and flush it so generated defaults are available.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            obj_data: 생성할 레코드의 데이터 딕셔너리 (Column values for the new record)

        Returns:
            ModelType: 생성된 레코드 (The created record)
        """
        db_obj: ModelType = self.model(**obj_data)
        db.add(db_obj)
        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update_fields(
        self,
        db: AsyncSession,
        db_obj: ModelType,
        update_data: dict[str, Any],
    ) -> ModelType:
        """이미 로드된 레코드의 필드를 변경합니다 (Apply field changes to a loaded record)."""
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await db.flush()
        await db.refresh(db_obj)
        return db_obj

    async def update_if_status(
        self,
        db: AsyncSession,
        record_id: UUID,
        expected_status: str,
        values: dict[str, Any],
        status_column: str = "status",
    ) -> bool:
        """현재 상태가 기대값일 때만 갱신합니다.

        Conditional update: UPDATE … WHERE id = :id AND status = :expected.
        Exactly one concurrent caller wins; the others see zero affected rows.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            record_id: 대상 레코드 UUID (Target record)
            expected_status: 기대 상태 (Status the caller observed)
            values: 변경할 컬럼 값 (Column values to set, including the new status)
            status_column: 상태 컬럼 이름 (Name of the guarded column)

        Returns:
            bool: 갱신 성공 여부 (True when this caller claimed the transition)
        """
        stmt = (
            update(self.model)
            .where(self.model.id == record_id)
            .where(getattr(self.model, status_column) == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1
