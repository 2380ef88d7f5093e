"""Amazon 검색 결과 페이지 테스트 자산

- 실제 마크업 구조만 흉내 낸 최소 HTML
- pytest fixture 선언하지 않음
"""

_HEAD = "<html><head><title>Amazon.com : search</title></head><body><div class=\"s-main-slot s-result-list\">"
_TAIL = "</div><div id=\"navFooter\">Conditions of Use</div></body></html>"


NEW_LAYOUT = _HEAD + """
  <div data-asin="B0TESTNEW1" data-index="1" data-component-type="s-search-result" class="s-result-item s-asin">
    <div class="s-product-image-container">
      <img class="s-image" src="https://m.media-amazon.com/images/I/71abcNEW1._AC_UL320_.jpg" alt="Running Shoe" data-image-index="1"/>
    </div>
    <h2><a class="a-link-normal" href="/Womens-Running-Shoe/dp/B0TESTNEW1/ref=sr_1_1?keywords=shoes">Women's Running Shoe</a></h2>
    <span class="a-price"><span class="a-offscreen">$59.99</span></span>
  </div>
  <div data-asin="B0TESTNEW2" data-index="2" data-component-type="s-search-result" class="s-result-item s-asin">
    <div class="s-product-image-container">
      <img src="https://m.media-amazon.com/images/I/81xyzNEW2._AC_UL320_.jpg" class="s-image" alt="Trail Shoe"/>
    </div>
    <h2><a class="a-link-normal" href="/Trail-Shoe/dp/B0TESTNEW2/ref=sr_1_2">Trail Shoe</a></h2>
    <span class="a-price"><span class="a-price-whole">74<span class="a-price-decimal">.</span></span><span class="a-price-fraction">50</span></span>
  </div>
""" + _TAIL


OLD_LAYOUT = _HEAD + """
  <div data-component-type="s-search-result" data-asin="B0TESTNEW1" data-index="1" class="s-result-item">
    <span class="rush-component">
      <img data-image-latency="s-product-image" src="https://images-na.ssl-images-amazon.com/images/I/71abcOLD1.jpg" alt=""/>
    </span>
    <a class="a-link-normal" href="/gp/product/B0TESTNEW1">Women's Running Shoe</a>
  </div>
""" + _TAIL


ROLE_LISTITEM = _HEAD + """
  <div data-asin="B0ROLE0001" role="listitem" data-component-type="s-search-result" class="sg-col-inner">
    <img class="s-image" src="https://m.media-amazon.com/images/I/61role1.jpg"/>
  </div>
  <div role="listitem" data-asin="B0ROLE0002" class="sg-col-inner">
    <img class="s-image" src="https://m.media-amazon.com/images/I/61role2.jpg"/>
  </div>
""" + _TAIL


NO_IMAGE_FIRST = _HEAD + """
  <div data-asin="B0NOIMAGE1" data-component-type="s-search-result" class="s-result-item">
    <h2><a href="/dp/B0NOIMAGE1">Listing Without Picture</a></h2>
    <span class="a-offscreen">$10.00</span>
  </div>
  <div data-asin="B0WITHIMG1" data-component-type="s-search-result" class="s-result-item">
    <img class="s-image" src="https://m.media-amazon.com/images/I/61withimg.jpg"/>
  </div>
""" + _TAIL


BAD_THUMBNAILS = _HEAD + """
  <div data-asin="B0BADTHUMB" data-component-type="s-search-result" class="s-result-item">
    <img class="s-image" src="data:image/gif;base64,R0lGODlhAQABAIAAAAAAAP"/>
    <img class="s-image" src="/images/relative-only.jpg"/>
    <img src="https://m.media-amazon.com/images/I/51fallback.jpg" data-image-latency="s-product-image"/>
  </div>
""" + _TAIL


MANY_LISTINGS = _HEAD + "".join(
    f"""
  <div data-asin="B0MANY{i:04d}" data-component-type="s-search-result">
    <img class="s-image" src="https://m.media-amazon.com/images/I/many{i}.jpg"/>
  </div>"""
    for i in range(1, 9)
) + _TAIL


BLOCKED = (
    "<html><head><title>Robot Check</title></head><body>"
    "<h4>Enter the characters you see below</h4>"
    "<p>Sorry, we just need to make sure you're not a robot. For best results, please make sure your browser "
    "is accepting cookies.</p></body></html>"
)


EMPTY_RESULTS = _HEAD + "<div class=\"s-no-outline\">No results for your search query.</div>" + _TAIL


AMAZON_PAGES = {
    "new_layout": NEW_LAYOUT,
    "old_layout": OLD_LAYOUT,
    "role_listitem": ROLE_LISTITEM,
    "no_image_first": NO_IMAGE_FIRST,
    "bad_thumbnails": BAD_THUMBNAILS,
    "many_listings": MANY_LISTINGS,
    "blocked": BLOCKED,
    "empty_results": EMPTY_RESULTS,
}
