DEDUP_PIPELINE_CONFIG = {
    "name": "Clinical_Note_Dedup",
    "debug": False,
    "show_summary": False,
    "settings": {
        "weights": {"jaccard": 0.4, "levenshtein": 0.2, "semantic": 0.4},
        "thresholdNear": 0.85,
        "thresholdSentence": 0.85,
        "complementaryRange": (0.30, 0.60),
        "preserveChronology": True,
        "mergeComplementary": True,
    },
    "steps": [
        # Build cached normalized views + initial priorities
        {"type": "normalize"},

        # byte-identical (post-normalization) notes
        {"type": "exact_dedup"},

        # seed clustering at thresholdNear
        {"type": "near_dedup"},

        # later repeated sentences
        {"type": "sentence_dedup"},

        # mid-band, same-day notes
        {"type": "complementary_merge"},

        # anchor order of the survivors
        {"type": "chronology"},
    ],
}

DEBUG_PIPELINE_CONFIG = {
    **DEDUP_PIPELINE_CONFIG,
    "name": "Clinical_Note_Dedup_Debug",
    "debug": True,
    "show_summary": True,
}
