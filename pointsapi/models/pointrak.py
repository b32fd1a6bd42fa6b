"""
포인트 원장(Pointrak) 데이터 모델

사용자 포인트의 모든 변동 내역을 저장하는 원장 테이블입니다.
잔액 변경은 반드시 같은 트랜잭션 안에서 이 테이블에 한 건씩 기록되어
감사 추적(Audit Trail)을 제공합니다.
"""

import enum

from sqlalchemy import BigInteger, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from pointsapi.models.base import BaseModel, IdType


class PointrakChannel(str, enum.Enum):
    """포인트 변동 발생 경로 (닫힌 열거형)"""

    JUST_REWARD = "just_reward"

    # 외부 광고
    OUTER_BANNER_SHOW = "outer_banner_show"
    OUTER_BANNER_CLICK = "outer_banner_click"
    OUTER_SCREEN_SHOW = "outer_screen_show"
    OUTER_SCREEN_CLICK = "outer_screen_click"
    OUTER_SCREEN_CLICK_VIDEO = "outer_screen_click_video"
    OUTER_REWARDVIDEO_SHOW = "outer_rewardvideo_show"
    OUTER_REWARDVIDEO_CLICK = "outer_rewardvideo_click"

    # 내부 광고
    INNER_TXT_SHOW = "inner_txt_show"
    INNER_TXT_CLICK = "inner_txt_click"
    INNER_IMG_SHOW = "inner_img_show"
    INNER_IMG_CLICK = "inner_img_click"
    INNER_VIDEO_SHOW = "inner_video_show"
    INNER_VIDEO_CLICK = "inner_video_click"

    # 게임
    GAME_PLAY = "game_play"
    GAME_DEFEAT = "game_defeat"
    GAME_VICTORY = "game_victory"

    SHOPPING = "shopping"
    PROMOTION = "promotion"
    ENVELOP = "envelop"

    # 원장 엔진
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    PAYSERIAL_ISSUE = "payserial_issue"
    PAYSERIAL_REDEEM = "payserial_redeem"
    PAYSERIAL_REFUND = "payserial_refund"
    CASHOUT_FREEZE = "cashout_freeze"
    CASHOUT_REFUND = "cashout_refund"
    ADMIN_ADJUST = "admin_adjust"


class Pointrak(BaseModel):
    """
    포인트 원장 테이블 - 잔액 변동 1건당 1행

    이 테이블은 다음 원칙을 따릅니다:
    1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
    2. 완전성(Complete): 모든 잔액 변동이 같은 트랜잭션에서 기록됨
    3. 정합성(Integrity): balance_after로 변동 직후 잔액을 추적
    """

    __tablename__ = "pointraks"
    __table_args__ = (
        UniqueConstraint("sn", name="uq_pointraks_sn"),
        Index("idx_pointraks_owner_created", "owner", "created_at"),
        Index("idx_pointraks_channel", "channel"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)

    # 전역 고유 일련번호 (삽입 시 생성)
    sn: Mapped[str] = mapped_column(String(64), nullable=False)

    # 포인트 변동량 - 양수면 증가, 음수면 감소
    points: Mapped[int] = mapped_column(BigInteger, nullable=False)

    owner: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )

    detail: Mapped[str] = mapped_column(Text, nullable=False, default="")

    channel: Mapped[PointrakChannel] = mapped_column(
        Enum(
            PointrakChannel,
            native_enum=False,
            length=50,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    # 변동 직후 잔액 - 정합성 검증용
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
