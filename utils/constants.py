"""
utils/constants.py

Purpose: Centralized static content

- All bot notification texts (HTML parse mode)
- Default reasons and labels
- Reusable constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# ADMIN NOTIFICATIONS
# ============================================================

NEW_ORDER_MESSAGE = """🛒 <b>New Order Received!</b>

📦 <b>Product:</b> {product_name}
💰 <b>Amount:</b> {amount}
🆔 <b>Order ID:</b> {order_id}

👤 <b>Customer:</b> {customer_name}
📱 <b>Username:</b> @{username}
🔢 <b>Telegram ID:</b> {telegram_id}

📝 <b>Input Values:</b>
{input_values}

⏰ <b>Time:</b> {created_at}"""

NEW_TOPUP_MESSAGE = """💳 <b>New Top-Up Request!</b>

💰 <b>Amount:</b> {amount}
💳 <b>Payment Method:</b> {payment_method}

👤 <b>Customer:</b> {customer_name}
📱 <b>Username:</b> @{username}
🔢 <b>Telegram ID:</b> {telegram_id}

⏰ <b>Time:</b> {created_at}

📸 Payment proof has been uploaded."""

# ============================================================
# USER NOTIFICATIONS
# ============================================================

ORDER_STATUS_MESSAGE = """{emoji} <b>Order {status_text}!</b>

📦 <b>Product:</b> {product_name}
💰 <b>Amount:</b> {amount}
🆔 <b>Order ID:</b> {order_id}{additional_text}"""

ORDER_APPROVED_TEXT = "\n\n🎮 Your order has been processed successfully. Please check your game account!"
ORDER_REJECTED_TEXT = "\n\n💰 Your payment has been refunded to your wallet balance."

TOPUP_STATUS_MESSAGE = """{emoji} <b>Top-Up {status_text}!</b>

💰 <b>Amount:</b> {amount}
💳 <b>Method:</b> {payment_method}{additional_text}"""

TOPUP_APPROVED_TEXT = "\n\n💰 {amount} has been added to your wallet!"
TOPUP_REJECTED_TEXT = "\n\n⚠️ Your top-up request was rejected. Please contact support if you have any questions."

BAN_MESSAGE = """⛔ <b>Account Banned</b>

Your account has been banned from using this service.

<b>Reason:</b> {reason}

If you believe this is a mistake, please contact support."""

UNBAN_MESSAGE = """✅ <b>Account Unbanned</b>

Your account has been unbanned. You can now use the service again.

Thank you for your patience!"""

OTP_MESSAGE = """🔐 <b>Verification Code</b>

Your OTP code is: <code>{otp}</code>

⚠️ Do not share this code with anyone.
⏰ This code will expire in {validity_minutes} minutes."""

STATUS_EMOJI = {
    "approved": "✅",
    "rejected": "❌",
}

# ============================================================
# REASONS & DEFAULTS
# ============================================================

DEFAULT_BAN_REASON = "Violated terms of service"
MAX_ATTEMPTS_BAN_REASON = "Exceeded maximum failed purchase attempts"

DEFAULT_WEBSITE_NAME = "Game Top-Up Shop"
DEFAULT_ANNOUNCEMENT = "Welcome to our Game Top-Up Shop! Best prices guaranteed!"
DEFAULT_THEME = "dark"
DEFAULT_DELIVERY_TIME = "instant"

OTP_MAX_ATTEMPTS = 5
