"""Reference data created on first run."""

from expense_tracker.models.ledger import TransactionType

DEFAULT_BOOKS = ("默认账本",)

DEFAULT_ACCOUNTS = ("现金", "银行卡", "支付宝", "微信")

DEFAULT_CATEGORIES = (
    ("餐饮", TransactionType.EXPENSE),
    ("购物", TransactionType.EXPENSE),
    ("交通", TransactionType.EXPENSE),
    ("娱乐", TransactionType.EXPENSE),
    ("医疗", TransactionType.EXPENSE),
    ("教育", TransactionType.EXPENSE),
    ("其他", TransactionType.EXPENSE),
    ("工资", TransactionType.INCOME),
    ("奖金", TransactionType.INCOME),
    ("理财", TransactionType.INCOME),
    ("其他收入", TransactionType.INCOME),
)
