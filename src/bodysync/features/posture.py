# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""人工标注的身体姿态：分层状态"""

from enum import IntEnum
from typing import Iterator, Union


class PostureState(IntEnum):
    NOT_CLASSIFIED = 0
    NOT_ON_BODY = 1
    TRANSITIONING = 2
    STABLE = 3


class Transition(IntEnum):
    SITTING_DOWN = 10
    STANDING_UP = 11


class StablePosture(IntEnum):
    SITTING = 100
    STANDING = 101
    WALKING = 102


PostureValue = Union[PostureState, Transition, StablePosture]


class Posture:
    """
    分层姿态状态

    基础状态有四种：未分类、不在身上、过渡中（细分为坐下、站起等）、
    稳定（细分为坐、站、走等）。过渡和稳定两种基础状态必须通过具体的
    子状态来设置。

    Args:
        state: 基础状态（未分类/不在身上）或具体的过渡/稳定状态
    """

    def __init__(self, state: PostureValue = PostureState.NOT_CLASSIFIED):
        self.base_state = PostureState.NOT_CLASSIFIED
        self.transition_state = None
        self.stable_state = None
        self.set_state(state)

    def set_state(self, state: PostureValue) -> None:
        if isinstance(state, Transition):
            self.base_state = PostureState.TRANSITIONING
            self.transition_state = state
            self.stable_state = None
        elif isinstance(state, StablePosture):
            self.base_state = PostureState.STABLE
            self.stable_state = state
            self.transition_state = None
        elif isinstance(state, PostureState):
            if state in (PostureState.TRANSITIONING, PostureState.STABLE):
                raise ValueError("过渡或稳定状态必须给出具体的子状态（Transition / StablePosture）")
            self.base_state = state
            self.transition_state = None
            self.stable_state = None
        else:
            raise ValueError(f"无效的姿态状态: {state!r}")

    @property
    def state(self) -> PostureValue:
        """最具体的状态值"""
        if self.base_state == PostureState.TRANSITIONING:
            return self.transition_state
        if self.base_state == PostureState.STABLE:
            return self.stable_state
        return self.base_state

    @property
    def id(self) -> int:
        return int(self.state)

    @classmethod
    def from_id(cls, value: int) -> 'Posture':
        for enum_type in (PostureState, Transition, StablePosture):
            try:
                return cls(enum_type(value))
            except ValueError:
                continue
        raise ValueError(f"该编号不对应任何有效姿态: {value}")

    @classmethod
    def parse(cls, value: str) -> 'Posture':
        """按名称解析（不区分大小写）"""
        if value is None:
            raise ValueError("姿态名称为空")
        key = value.strip().upper()
        for enum_type in (PostureState, Transition, StablePosture):
            if key in enum_type.__members__:
                return cls(enum_type[key])
        raise ValueError(f"无效的姿态名称: {value}")

    @staticmethod
    def state_names() -> Iterator[str]:
        """列出所有可直接设置的状态名称"""
        yield PostureState.NOT_CLASSIFIED.name
        yield PostureState.NOT_ON_BODY.name
        for state in Transition:
            yield state.name
        for state in StablePosture:
            yield state.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Posture):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return self.id

    def __str__(self) -> str:
        return self.state.name

    def __repr__(self) -> str:
        return f"Posture({self.state.name})"
