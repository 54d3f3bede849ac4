"""
Starter FAQ catalogue, one block per domain.

Seeded on startup when enabled; entries already present for the same
(question, domain) are skipped.
"""

from casedesk.config import Domain

DEFAULT_FAQS = [
    # E-commerce
    {
        "question": "When will my order be delivered?",
        "answer": "Your order is typically delivered within 3-5 business days, depending on your location and the availability of the product. You can track your order status in the 'Your Ordered Products' section.",
        "domain": Domain.ECOMMERCE,
    },
    {
        "question": "How do I return an item?",
        "answer": "You can initiate a return within 30 days of receiving your item by submitting a request through our support system. Ensure the item is unused and in its original packaging.",
        "domain": Domain.ECOMMERCE,
    },
    {
        "question": "Can I cancel my order?",
        "answer": "Orders can be canceled before they are shipped. Contact support through the dashboard to verify if your order is eligible for cancellation.",
        "domain": Domain.ECOMMERCE,
    },
    {
        "question": "How do I track my order status?",
        "answer": "Check the status of your order in the 'Your Ordered Products' section of your dashboard or reach out to support for real-time updates.",
        "domain": Domain.ECOMMERCE,
    },
    # Travel
    {
        "question": "How can I change my travel booking?",
        "answer": "You can modify your booking by contacting support through the dashboard. Changes are subject to availability and may incur additional fees.",
        "domain": Domain.TRAVEL,
    },
    {
        "question": "What is the refund policy for cancellations?",
        "answer": "Refunds for canceled bookings depend on the terms of your ticket or package. Initiate a cancellation request via the support system to check eligibility.",
        "domain": Domain.TRAVEL,
    },
    {
        "question": "How do I check my flight or hotel booking status?",
        "answer": "View your booking details in the 'Travel Products' section of your dashboard or contact support for the latest updates.",
        "domain": Domain.TRAVEL,
    },
    {
        "question": "What should I do if my flight is delayed or canceled?",
        "answer": "If your flight is delayed or canceled, reach out to support immediately to explore rebooking options or compensation, if applicable.",
        "domain": Domain.TRAVEL,
    },
    # Telecommunications
    {
        "question": "How do I check my mobile plan details?",
        "answer": "You can view your plan details, including data usage and billing, in the 'Telecommunications Products' section of your dashboard.",
        "domain": Domain.TELECOM,
    },
    {
        "question": "How can I report a service issue?",
        "answer": "Report service issues like connectivity problems by creating a support case through the dashboard. Provide detailed information for faster resolution.",
        "domain": Domain.TELECOM,
    },
    {
        "question": "Can I change or cancel my subscription plan?",
        "answer": "You can request to change or cancel your plan by contacting support. Some plans may have specific terms for modifications or cancellations.",
        "domain": Domain.TELECOM,
    },
    {
        "question": "How do I resolve billing disputes?",
        "answer": "If you notice an error in your bill, initiate a support case in the dashboard with details of the issue, and our team will investigate promptly.",
        "domain": Domain.TELECOM,
    },
    # Banking Services
    {
        "question": "How do I check my account balance or transactions?",
        "answer": "Access your account balance and transaction history in the 'Banking Services Products' section of your dashboard.",
        "domain": Domain.BANKING,
    },
    {
        "question": "What should I do if I suspect unauthorized activity on my account?",
        "answer": "Immediately report unauthorized activity by creating a high-priority support case through the dashboard for quick resolution.",
        "domain": Domain.BANKING,
    },
    {
        "question": "How can I update my account details?",
        "answer": "To update details like your address or contact information, submit a request via the support system in the dashboard.",
        "domain": Domain.BANKING,
    },
    {
        "question": "How do I request a refund for a disputed transaction?",
        "answer": "Initiate a support case with details of the disputed transaction, and our team will review it and process any applicable refunds.",
        "domain": Domain.BANKING,
    },
]
