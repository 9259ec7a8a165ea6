from subtrack.services.comment_builder import build_comment, fallback_comment, rewrite_line

MARKER = "🏆 TOP PICKS LINEUP"


def test_task_id_is_replaced_by_sub_id():
    desc = f"{MARKER}\nBrand X | https://aff.example.com/click?clickid=86abc123 |"
    comment = build_comment(desc, "86abc123", "SID-42")
    assert "https://aff.example.com/click?clickid=SID-42" in comment.text
    assert "86abc123" not in comment.text


def test_fallback_when_section_missing():
    comment = build_comment("Just a brief, no lineup here.", "86abc123", "SID-42")
    assert comment.text == "Sub-ID: SID-42"
    assert comment.segments == fallback_comment("SID-42").segments


def test_fallback_when_section_has_nothing_left():
    desc = f"## {MARKER}\n| Brand | Link |\n|---|---|\n| | https://rebrand.ly/x |"
    assert build_comment(desc, "t1", "S1").text == "Sub-ID: S1"


def test_segments_use_code_block_lines():
    desc = f"{MARKER}\nBrand X | https://aff.example.com/?subid=t1"
    segments = build_comment(desc, "t1", "S1").segments
    assert segments[0] == {"text": "Sub-ID: S1", "attributes": {"bold": True}}
    assert segments[2] == {"text": MARKER, "attributes": {"bold": True}}
    assert segments[4] == {"text": "Brand X | https://aff.example.com/?subid=S1", "attributes": {}}
    assert segments[5] == {"text": "\n", "attributes": {"code-block": {"code-block": "plain"}}}


def test_payload_shape():
    comment = fallback_comment("S1")
    assert comment.payload() == {"comment": [{"text": "Sub-ID: S1", "attributes": {}}], "notify_all": False}


def test_cloaked_links_are_dropped():
    desc = (
        f"{MARKER}\n"
        "| 1 | Brand X | https://aff.example.com/?clickid=t1 |\n"
        "| 2 | Brand Y | https://rebrand.ly/brandy |\n"
    )
    text = build_comment(desc, "t1", "S1").text
    assert "rebrand.ly" not in text
    assert "| 2 | Brand Y |" in text


def test_stray_task_id_is_removed():
    line = "| 1 | Brand X | https://aff.example.com/click?clickid=86abc123 | 86abc123 |"
    assert rewrite_line(line, "86abc123", "SID-42") == (
        "| 1 | Brand X | https://aff.example.com/click?clickid=SID-42 |"
    )


def test_unrelated_param_is_not_overwritten():
    line = "Brand | https://aff.example.com/?payload=campaign7&subid=t1"
    assert rewrite_line(line, "t1", "S1") == "Brand | https://aff.example.com/?payload=campaign7&subid=S1"


def test_url_without_task_id_is_left_alone():
    line = "Brand | https://aff.example.com/?subid=other"
    assert rewrite_line(line, "t1", "S1") == line


def test_params_after_tracking_value_survive():
    desc = f"{MARKER}\nBrand | https://aff.example.com/go?clickid=86abc123&currency=USD |"
    text = build_comment(desc, "86abc123", "SID-42").text
    assert "clickid=SID-42&currency=USD" in text
    assert "86abc123" not in text


def test_value_wrapped_mid_token_is_rewritten():
    desc = f"{MARKER}\n| 1 | Brand X | https://aff.example.com/click?clickid=86abc\n123 |"
    text = build_comment(desc, "86abc123", "SID-42").text
    assert "https://aff.example.com/click?clickid=SID-42" in text
    assert "86abc" not in text
