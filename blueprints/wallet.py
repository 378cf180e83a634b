#======================================================================================
#
# Creator wallet, PayPal linkage, withdrawals and earnings history
#
#======================================================================================
from flask import Blueprint, jsonify, request
from flask_login import current_user

from wallet.wallets import WalletManager
from wallet.withdrawals import WithdrawalProcessor
from wallet.earnings import EarningsQueryHelper
from utils import creator_required


bp = Blueprint('wallet', __name__, url_prefix="/wallet")


@bp.route("/create", methods=["POST"])
@creator_required
def create_wallet():
    wallet = WalletManager.create_wallet(current_user.id)
    return jsonify(wallet.to_dict()), 201


@bp.route("", methods=["GET"])
@creator_required
def get_wallet():
    wallet = WalletManager.get_wallet_by_creator_id(current_user.id)
    return jsonify(wallet.to_dict()), 200


@bp.route("/link-paypal", methods=["POST"])
@creator_required
def link_paypal():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not isinstance(email, str):
        return jsonify({"error": "A valid PayPal email is required"}), 400

    wallet = WalletManager.link_paypal(current_user.id, email)
    return jsonify(wallet.to_dict()), 200


@bp.route("/withdrawals", methods=["POST"])
@creator_required
def request_withdrawal():
    data = request.get_json(silent=True) or {}
    if data.get("amount") is None:
        return jsonify({"error": "Invalid withdrawal amount"}), 400

    withdrawal = WithdrawalProcessor.request_withdrawal(current_user.id, data["amount"])
    return jsonify(withdrawal.to_dict()), 201


@bp.route("/withdrawals", methods=["GET"])
@creator_required
def withdrawal_history():
    withdrawals = WithdrawalProcessor.get_withdrawal_history(current_user.id)
    return jsonify([w.to_dict() for w in withdrawals]), 200


@bp.route("/earnings", methods=["GET"])
@creator_required
def earnings_history():
    earnings = EarningsQueryHelper.get_daily_earnings(current_user.id)
    return jsonify([e.to_dict() for e in earnings]), 200
