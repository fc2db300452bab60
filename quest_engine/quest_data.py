"""
Quest Template Master Data
クエストテンプレートの定義ファイルです。
ここを編集するとカタログ (TemplateCatalog.default()) に反映されます。
"""

# テンプレート定義
# allowed_granularities: 'daily' / 'weekly' / 'monthly' / 'special'
# weight: 出現しやすさ (1〜10)
# {{...}}: is_dynamic のテンプレートで難易度に応じた値に置換される
QUEST_TEMPLATES = [
    # --- 健康 (health) ---
    {
        'id': 'health_water', 'title': '水を{{amount}}杯飲む', 'description': '一日を通してこまめに水分補給',
        'category': 'health', 'difficulty': 1, 'base_xp': 15, 'icon': '💧',
        'tags': ['hydration', 'simple'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 8,
        'is_dynamic': True, 'personalized_fields': ['amount'],
        'variations': [
            {'id': 'water_light', 'title': '水を4杯飲む', 'xp_modifier': 0.8},
            {'id': 'water_moderate', 'title': '水を6杯飲む', 'xp_modifier': 1.0},
            {'id': 'water_intensive', 'title': '水を8杯飲む', 'xp_modifier': 1.3, 'difficulty_modifier': 1},
        ],
    },
    {
        'id': 'health_sleep', 'title': '{{time}}までに寝る', 'description': '規則正しい睡眠リズムを保つ',
        'category': 'health', 'difficulty': 2, 'base_xp': 25, 'icon': '🌙',
        'tags': ['sleep', 'routine'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 6,
        'is_dynamic': True, 'personalized_fields': ['time'],
    },
    {
        'id': 'health_meal_prep', 'title': '健康的な食事を{{meals}}食分作り置きする', 'description': '前もって献立を考えて準備',
        'category': 'health', 'difficulty': 3, 'base_xp': 40, 'icon': '🥗',
        'tags': ['nutrition', 'cooking'], 'allowed_granularities': ['weekly', 'monthly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['meals'], 'max_completions': 2, 'time_limit_minutes': 180,
    },
    {
        'id': 'health_checkup', 'title': '健康診断の予約をする',
        'category': 'health', 'difficulty': 2, 'base_xp': 60, 'icon': '🏥',
        'tags': ['checkup'], 'allowed_granularities': ['monthly'], 'weight': 3, 'level_requirement': 2,
    },

    # --- 運動 (fitness) ---
    {
        'id': 'fitness_stretch', 'title': '{{minutes}}分ストレッチする', 'description': 'やさしいストレッチで一日を始める',
        'category': 'fitness', 'difficulty': 1, 'base_xp': 20, 'icon': '🧘',
        'tags': ['stretching', 'morning'], 'allowed_granularities': ['daily'], 'weight': 9,
        'is_dynamic': True, 'personalized_fields': ['minutes'], 'time_limit_minutes': 30,
    },
    {
        'id': 'fitness_walk', 'title': '{{steps}}歩あるく',
        'category': 'fitness', 'difficulty': 1, 'base_xp': 20, 'icon': '🚶',
        'tags': ['walking'], 'allowed_granularities': ['daily'], 'weight': 7,
        'is_dynamic': True, 'personalized_fields': ['steps'],
    },
    {
        'id': 'fitness_cardio', 'title': '{{minutes}}分の有酸素運動', 'description': '心肺機能を鍛えるトレーニング',
        'category': 'fitness', 'difficulty': 3, 'base_xp': 45, 'icon': '🏃',
        'tags': ['cardio'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 6,
        'is_dynamic': True, 'personalized_fields': ['minutes'], 'time_limit_minutes': 90, 'level_requirement': 2,
    },
    {
        'id': 'fitness_swim', 'title': 'プールで泳ぐ',
        'category': 'fitness', 'difficulty': 3, 'base_xp': 50, 'icon': '🏊',
        'tags': ['summer'], 'allowed_granularities': ['weekly'], 'weight': 5,
        'seasonal_availability': [6, 7, 8, 9],
    },

    # --- 仕事 (work) ---
    {
        'id': 'work_inbox_zero', 'title': '受信トレイを空にする',
        'category': 'work', 'difficulty': 2, 'base_xp': 25, 'icon': '📥',
        'tags': ['email'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 6,
    },
    {
        'id': 'work_focus_block', 'title': '{{minutes}}分の集中作業', 'description': '通知を切って1つの作業に集中',
        'category': 'work', 'difficulty': 2, 'base_xp': 30, 'icon': '🎯',
        'tags': ['focus'], 'allowed_granularities': ['daily'], 'weight': 7,
        'is_dynamic': True, 'personalized_fields': ['minutes'], 'time_limit_minutes': 120,
    },
    {
        'id': 'work_weekly_review', 'title': '今週の振り返りと来週の計画',
        'category': 'work', 'difficulty': 3, 'base_xp': 55, 'icon': '🗓️',
        'tags': ['planning'], 'allowed_granularities': ['weekly'], 'weight': 6,
    },
    {
        'id': 'work_goal_review', 'title': '年間目標を見直す',
        'category': 'work', 'difficulty': 4, 'base_xp': 80, 'icon': '📈',
        'tags': ['planning'], 'allowed_granularities': ['monthly'], 'weight': 4, 'level_requirement': 3,
    },

    # --- 自分磨き (personal) ---
    {
        'id': 'personal_tidy', 'title': '{{minutes}}分だけ片付けをする',
        'category': 'personal', 'difficulty': 1, 'base_xp': 15, 'icon': '🧹',
        'tags': ['home'], 'allowed_granularities': ['daily'], 'weight': 8,
        'is_dynamic': True, 'personalized_fields': ['minutes'],
    },
    {
        'id': 'personal_journal', 'title': '日記を書く', 'description': '今日の出来事を3行で記録',
        'category': 'personal', 'difficulty': 1, 'base_xp': 15, 'icon': '📓',
        'tags': ['journal'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 7,
        'variations': [
            {'id': 'journal_short', 'title': '日記を3行書く', 'xp_modifier': 0.8},
            {'id': 'journal_long', 'title': '日記を1ページ書く', 'xp_modifier': 1.5, 'difficulty_modifier': 1},
        ],
    },
    {
        'id': 'personal_budget', 'title': '家計簿をつける',
        'category': 'personal', 'difficulty': 2, 'base_xp': 35, 'icon': '💰',
        'tags': ['finance'], 'allowed_granularities': ['weekly', 'monthly'], 'weight': 5,
    },
    {
        'id': 'personal_declutter', 'title': '不要な物を{{number}}個手放す',
        'category': 'personal', 'difficulty': 3, 'base_xp': 50, 'icon': '📦',
        'tags': ['home'], 'allowed_granularities': ['monthly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['number'],
    },

    # --- 交流 (social) ---
    {
        'id': 'social_message', 'title': '{{number}}人の友人に連絡する',
        'category': 'social', 'difficulty': 1, 'base_xp': 15, 'icon': '💬',
        'tags': ['friends'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 6,
        'is_dynamic': True, 'personalized_fields': ['number'],
    },
    {
        'id': 'social_family_dinner', 'title': '家族とゆっくり夕食をとる',
        'category': 'social', 'difficulty': 2, 'base_xp': 30, 'icon': '🍽️',
        'tags': ['family'], 'allowed_granularities': ['weekly'], 'weight': 6,
    },
    {
        'id': 'social_meetup', 'title': '友人と外で遊ぶ予定を立てる',
        'category': 'social', 'difficulty': 3, 'base_xp': 60, 'icon': '🏖️',
        'tags': ['friends'], 'allowed_granularities': ['monthly'], 'weight': 4, 'level_requirement': 4,
    },

    # --- 学習 (learning) ---
    {
        'id': 'learning_read', 'title': '本を{{pages}}ページ読む',
        'category': 'learning', 'difficulty': 2, 'base_xp': 25, 'icon': '📚',
        'tags': ['reading'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 8,
        'is_dynamic': True, 'personalized_fields': ['pages'], 'time_limit_minutes': 60,
    },
    {
        'id': 'learning_topic', 'title': '{{topic}}について調べる',
        'category': 'learning', 'difficulty': 2, 'base_xp': 30, 'icon': '🔎',
        'tags': ['research'], 'allowed_granularities': ['weekly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['topic'],
    },
    {
        'id': 'learning_skill', 'title': '{{skill}}の練習を{{hours}}時間する',
        'category': 'learning', 'difficulty': 3, 'base_xp': 70, 'icon': '🎓',
        'tags': ['skill'], 'allowed_granularities': ['monthly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['skill', 'hours'], 'prerequisites': ['learning_topic'],
    },

    # --- 創作 (creativity) ---
    {
        'id': 'creativity_sketch', 'title': '{{minutes}}分スケッチする',
        'category': 'creativity', 'difficulty': 1, 'base_xp': 20, 'icon': '🎨',
        'tags': ['drawing'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['minutes'],
    },
    {
        'id': 'creativity_project', 'title': '趣味の作品を1つ仕上げる',
        'category': 'creativity', 'difficulty': 4, 'base_xp': 90, 'icon': '🧶',
        'tags': ['project'], 'allowed_granularities': ['monthly'], 'weight': 4, 'level_requirement': 5,
    },

    # --- マインドフルネス (mindfulness) ---
    {
        'id': 'mindfulness_meditate', 'title': '{{minutes}}分瞑想する',
        'category': 'mindfulness', 'difficulty': 1, 'base_xp': 20, 'icon': '🧘',
        'tags': ['meditation'], 'allowed_granularities': ['daily', 'weekly'], 'weight': 8,
        'is_dynamic': True, 'personalized_fields': ['minutes'], 'time_limit_minutes': 30,
    },
    {
        'id': 'mindfulness_gratitude', 'title': '感謝していることを{{number}}個書き出す',
        'category': 'mindfulness', 'difficulty': 1, 'base_xp': 15, 'icon': '🙏',
        'tags': ['gratitude'], 'allowed_granularities': ['daily'], 'weight': 7,
        'is_dynamic': True, 'personalized_fields': ['number'],
    },
    {
        'id': 'mindfulness_digital_detox', 'title': 'デジタルデトックスを{{hours}}時間',
        'category': 'mindfulness', 'difficulty': 3, 'base_xp': 45, 'icon': '📵',
        'tags': ['detox'], 'allowed_granularities': ['weekly', 'monthly'], 'weight': 5,
        'is_dynamic': True, 'personalized_fields': ['hours'],
    },
]

# 特別クエスト (イベント・チャレンジ)
# event_start / event_end を持つものはその期間だけ出現する
SPECIAL_QUEST_TEMPLATES = [
    {
        'id': 'special_monthly_challenge', 'title': '今月のチャレンジ',
        'description': '1ヶ月かけて取り組む特別な挑戦',
        'category': 'personal', 'difficulty': 4, 'base_xp': 100, 'icon': '🏆',
        'tags': ['challenge'], 'allowed_granularities': ['special'], 'weight': 10, 'level_requirement': 3,
        'variations': [
            {'id': 'challenge_fitness', 'title': 'チャレンジ: 30日間毎日運動', 'xp_modifier': 1.2},
            {'id': 'challenge_reading', 'title': 'チャレンジ: 週に1冊読書', 'xp_modifier': 1.1},
            {'id': 'challenge_mindfulness', 'title': 'チャレンジ: 毎日瞑想', 'xp_modifier': 1.0},
        ],
    },
    {
        'id': 'special_collaborative', 'title': '家族で共同プロジェクト',
        'description': '家族みんなで1つの目標に取り組む',
        'category': 'social', 'difficulty': 5, 'base_xp': 150, 'icon': '👥',
        'tags': ['team'], 'allowed_granularities': ['special'], 'weight': 8, 'level_requirement': 5,
        'max_completions': 1, 'time_limit_minutes': 10080,
    },
    {
        'id': 'special_year_end_cleaning', 'title': '【年末】大掃除：窓拭き',
        'category': 'personal', 'difficulty': 3, 'base_xp': 100, 'icon': '🪟',
        'tags': ['event', 'seasonal'], 'allowed_granularities': ['special'], 'weight': 10,
        'event_start': '2025-12-25', 'event_end': '2025-12-31',
    },
    {
        'id': 'special_spring_outdoor', 'title': '【春】自然の中で30分過ごす',
        'category': 'health', 'difficulty': 2, 'base_xp': 40, 'icon': '🌸',
        'tags': ['event', 'seasonal'], 'allowed_granularities': ['special'], 'weight': 8,
        'event_start': '2026-03-20', 'event_end': '2026-06-20',
    },
]

# 節目 (マイルストーン) クエスト
# 次の節目まであと1つ (レベル / 達成数) のときだけ特別クエストとして追加される
# {target}: 節目の値 (レベル5, 50回 など)
MILESTONE_QUEST_TEMPLATES = {
    'level': {
        'title': '【節目】レベル{target}に到達する',
        'description': '大きな節目まであと少し！この調子で頑張ろう',
        'category': 'personal', 'difficulty': 3, 'base_xp': 150, 'icon': '🏆',
        'tags': ['milestone', 'level'], 'duration_days': 7,
    },
    'quests': {
        'title': '【節目】クエストを{target}回達成する',
        'description': 'あと1回で{target}回達成！',
        'category': 'personal', 'difficulty': 2, 'base_xp': 100, 'icon': '🎯',
        'tags': ['milestone', 'quests'], 'duration_days': 3,
    },
}
