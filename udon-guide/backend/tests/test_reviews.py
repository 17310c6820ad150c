from services.reviews import summarize_reviews


def test_no_reviews_gives_none() -> None:
    assert summarize_reviews([]) is None
    assert summarize_reviews(["", "   ", None]) is None


def test_aspects_ranked_by_mentions_with_tone() -> None:
    text = summarize_reviews(
        [
            "麺のコシが最高。おすすめ",
            "麺がもちもちで美味しい",
            "出汁が美味しい",
        ]
    )
    lines = text.splitlines()
    assert lines[0] == "- 麺（コシ/食感）: 好意的な声が多い"
    assert lines[1] == "- 出汁・つゆ: 言及が多い"


def test_negative_tone() -> None:
    text = summarize_reviews(["店員の対応が残念", "接客が微妙だった"])
    assert text == "- 接客・雰囲気: 不満の声もある"


def test_no_aspect_hits_gives_generic_bullet() -> None:
    assert summarize_reviews(["また来ます"]) == "- 全体的な評価の傾向はレビュー本文を確認してください"
