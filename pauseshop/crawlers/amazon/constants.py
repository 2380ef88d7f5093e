"""Amazon 검색/파싱 상수"""

from pauseshop.schemas.product_schema import ProductCategory


SUPPORTED_DOMAINS = (
    "amazon.com",
    "amazon.co.uk",
    "amazon.de",
    "amazon.fr",
    "amazon.it",
    "amazon.es",
    "amazon.ca",
    "amazon.com.au",
    "amazon.co.jp",
)

# 카테고리 → 마켓플레이스 category node (rh=n:<node>)
CATEGORY_NODES: dict[ProductCategory, str] = {
    ProductCategory.CLOTHING: "7141123011",  # Clothing, Shoes & Jewelry
    ProductCategory.FOOTWEAR: "679255011",  # Shoes
    ProductCategory.ACCESSORIES: "2475687011",
    ProductCategory.ELECTRONICS: "172282",
    ProductCategory.FURNITURE: "1063306",  # Home & Kitchen > Furniture
    ProductCategory.HOME_DECOR: "1063498",
    ProductCategory.BOOKS_MEDIA: "283155",
    ProductCategory.SPORTS_FITNESS: "3375251",
    ProductCategory.BEAUTY_PERSONAL_CARE: "3760901",
    ProductCategory.KITCHEN_DINING: "1063498",  # Home & Kitchen
    # OTHER: 필터 없음
}

# 성별 수식어를 붙이는 의류 계열 카테고리
APPAREL_CATEGORIES = frozenset({
    ProductCategory.CLOTHING,
    ProductCategory.FOOTWEAR,
    ProductCategory.ACCESSORIES,
})

SORT_PARAM = "relevanceblender"
REF_PARAM = "sr_pg_1"

# URL 쿼리 컴포넌트를 깨뜨리는 문자
SEARCH_TERM_STRIP_CHARS = "<>{}[]\\"

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
)

BLOCK_KEYWORDS = (
    # 챌린지/CAPTCHA 페이지에서만 나오는 문구만 보관합니다. (소문자 비교)
    "captcha",
    "enter the characters you see below",
    "robot check",
    "sorry, we just need to make sure you're not a robot",
    "api-services-support@amazon.com",
)

# 썸네일로 인정하는 이미지 호스트/확장자
IMAGE_HOST_MARKERS = (
    "images-amazon",
    "ssl-images-amazon",
    "media-amazon",
    "m.media-amazon",
)
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
