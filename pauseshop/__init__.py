"""PauseShop - 일시정지된 영상 프레임에서 상품을 찾아 마켓플레이스 후보를 수집합니다."""

__version__ = "0.3.0"
