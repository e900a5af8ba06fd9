# Conversation list
CONVERSATION_SELECTOR = '[data-testid="conversation"]'
CONVERSATION_AVATAR_SELECTOR = '[data-testid="DM_Conversation_Avatar"]'
TIME_SELECTOR = "time"

# Open conversation
MESSAGE_ENTRY_SELECTOR = '[data-testid="messageEntry"]'
MESSAGE_TEXT_SELECTOR = '[data-testid="tweetText"]'
MESSAGE_DATE_HEADING_SELECTOR = 'div[dir="ltr"] time'
NESTED_ENTRY_BUTTON_SELECTOR = 'button[data-testid="messageEntry"]'
QUOTED_BLOCK_SELECTOR = '[data-testid="DMCompositeMessage"]'
QUOTED_USER_SELECTOR = '[data-testid="User-Name"]'

# Styling class X puts on the user's own bubbles. Incidental and likely to change.
OWN_BUBBLE_CLASS = "r-obd0qt"

# Navigation
PROFILE_LINK_SELECTOR = '[data-testid="AppTabBar_Profile_Link"]'
