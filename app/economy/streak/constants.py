STREAK_QUALIFYING_EASY_TASKS = 2

STREAK_MILESTONE_BONUSES: dict[int, int] = {
    3: 50,
    7: 150,
    14: 300,
    30: 750,
}
