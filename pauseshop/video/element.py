"""비디오/문서 이벤트 모델

브라우저 쪽 어댑터가 미디어 이벤트(pause, play, seeking, seeked, timeupdate)와
입력 이벤트(mousedown, keydown), DOM 변경을 이 객체들로 전달합니다.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Union

from pauseshop.core.logging import logger


Listener = Callable[[Any], None]


class EventEmitter:
    """addEventListener / removeEventListener와 같은 최소 이벤트 허브"""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def add_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def remove_listener(self, event_type: str, listener: Listener) -> None:
        listeners = self._listeners.get(event_type)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, ()))

    def emit(self, event_type: str, event: Any = None) -> None:
        for listener in list(self._listeners.get(event_type, ())):
            listener(event)


class VideoElement(EventEmitter):
    """관찰 대상 비디오 1개

    pause()/play()/seek()/advance_to()는 브라우저가 발생시키는 순서대로 이벤트를 냅니다.
    """

    def __init__(
        self,
        *,
        current_time: float = 0.0,
        duration: float = 0.0,
        paused: bool = True,
        width: int = 640,
        height: int = 360,
        element_id: str = "",
    ) -> None:
        super().__init__()
        self.current_time = current_time
        self.duration = duration
        self.paused = paused
        self.ended = False
        self.width = width
        self.height = height
        self.element_id = element_id

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def is_near_end(self, threshold_s: float) -> bool:
        # duration을 모르면(0) 판단하지 않음
        if self.duration <= 0:
            return False
        return self.duration - self.current_time < threshold_s

    def play(self) -> None:
        self.paused = False
        self.ended = False
        self.emit("play")

    def pause(self) -> None:
        if self.paused:
            return
        self.paused = True
        self.emit("pause")

    def seek(self, target_time: float) -> None:
        self.emit("seeking")
        self.current_time = target_time
        self.emit("seeked")

    def advance_to(self, current_time: float) -> None:
        self.current_time = current_time
        self.emit("timeupdate")

    def finish(self) -> None:
        self.current_time = self.duration
        self.ended = True
        self.paused = True
        self.emit("pause")
        self.emit("ended")

    def __repr__(self) -> str:
        return f"VideoElement(id={self.element_id!r}, {self.width}x{self.height}, t={self.current_time:.2f})"


@dataclass
class ContainerNode:
    """비디오를 품고 있는 DOM 서브트리"""

    children: List[Union["ContainerNode", VideoElement]] = field(default_factory=list)

    def iter_videos(self) -> Iterable[VideoElement]:
        for child in self.children:
            if isinstance(child, VideoElement):
                yield child
            elif isinstance(child, ContainerNode):
                yield from child.iter_videos()


@dataclass(frozen=True)
class InteractionEvent:
    """mousedown / keydown 입력 이벤트"""

    type: str
    key: Optional[str] = None
    target_classes: FrozenSet[str] = frozenset()
    ancestor_classes: FrozenSet[str] = frozenset()

    def has_class(self, name: str) -> bool:
        return name in self.target_classes

    def within(self, name: str) -> bool:
        """대상 자신이나 조상 중 하나라도 name 클래스를 가지면 True (closest)"""
        return name in self.target_classes or name in self.ancestor_classes


class Document(EventEmitter):
    """페이지 1개 (hostname + DOM 루트)

    - append(): 노드 추가 후 "mutation" 이벤트로 추가된 노드 목록 전달
    - dispatch_interaction(): 입력 이벤트를 이벤트 타입 이름으로 전달
    """

    def __init__(self, hostname: str = "localhost") -> None:
        super().__init__()
        self.hostname = hostname
        self.root = ContainerNode()

    @property
    def videos(self) -> List[VideoElement]:
        return list(self.root.iter_videos())

    def append(self, *nodes: Union[ContainerNode, VideoElement]) -> None:
        self.root.children.extend(nodes)
        logger.debug(f"[DOCUMENT] {len(nodes)} node(s) added on {self.hostname}")
        self.emit("mutation", list(nodes))

    def dispatch_interaction(self, event: InteractionEvent) -> None:
        self.emit(event.type, event)
