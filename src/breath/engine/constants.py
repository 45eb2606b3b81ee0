MAX_BREATH = 3
ATTACK_COST = 1
DEFENSE_COST = 1
DODGE_COST = 1
ATTACK_DAMAGE = 2
# Cards dealt to each player at the start of a match
INITIAL_HAND_SIZE = 3
# Draw limit
HAND_SIZE = 3
DECK_SIZE = 21
