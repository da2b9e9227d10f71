"""initial_schema

Revision ID: 3f9a1c7e2b44
Revises:
Create Date: 2026-10-19 09:30:00.000000

Multi-tenant restaurant schema:
- Catalog: restaurants, categories, products, modifiers, payment methods,
  delivery zones, inventory, promotions
- Assistant: agents, fallback scenarios, conversations, messages
- Orders: customers, orders, order items
- Analytics: sentiment, learning interactions/patterns, A/B tests
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f9a1c7e2b44'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # ==========================================================================
    # Tenant & catalog
    # ==========================================================================

    op.create_table('restaurants',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('whatsapp', sa.String(length=30), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_restaurants_slug'), 'restaurants', ['slug'], unique=True)

    op.create_table('categories',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_categories_restaurant_id'), 'categories', ['restaurant_id'])

    op.create_table('products',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('category_id', sa.UUID(), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default='true'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_products_restaurant_id'), 'products', ['restaurant_id'])
    op.create_index(op.f('ix_products_category_id'), 'products', ['category_id'])

    op.create_table('modifiers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('product_id', sa.UUID(), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_modifiers_restaurant_id'), 'modifiers', ['restaurant_id'])
    op.create_index(op.f('ix_modifiers_product_id'), 'modifiers', ['product_id'])

    op.create_table('payment_methods',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('method_type', sa.String(length=50), nullable=False),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payment_methods_restaurant_id'), 'payment_methods', ['restaurant_id'])

    op.create_table('delivery_zones',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('min_order_value', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('estimated_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_delivery_zones_restaurant_id'), 'delivery_zones', ['restaurant_id'])

    op.create_table('product_inventory',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('product_id', sa.UUID(), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id')
    )
    op.create_index(op.f('ix_product_inventory_restaurant_id'), 'product_inventory', ['restaurant_id'])

    op.create_table('dynamic_promotions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('discount_type', sa.Enum('percentage', 'fixed', name='discounttype'), nullable=False),
        sa.Column('discount_value', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _timestamp('start_time', nullable=True),
        _timestamp('end_time', nullable=True),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_dynamic_promotions_restaurant_id'), 'dynamic_promotions', ['restaurant_id'])

    # ==========================================================================
    # Agents & conversations
    # ==========================================================================

    op.create_table('agents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('personality', sa.Text(), nullable=False, server_default=''),
        sa.Column('instructions', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('whatsapp_number', sa.String(length=30), nullable=True),
        sa.Column('evolution_api_instance', sa.String(length=100), nullable=True),
        sa.Column('evolution_api_token', sa.String(length=255), nullable=True),
        sa.Column('ai_model', sa.String(length=100), nullable=True),
        sa.Column('max_tokens', sa.Integer(), nullable=False, server_default='500'),
        sa.Column('temperature', sa.Float(), nullable=True),
        sa.Column('response_style', sa.String(length=50), nullable=False, server_default='friendly'),
        sa.Column('language', sa.String(length=10), nullable=False, server_default='pt-BR'),
        sa.Column('context_memory_turns', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('enable_sentiment_analysis', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('enable_order_intent_detection', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('enable_proactive_suggestions', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('enable_conversation_summary', sa.Boolean(), nullable=False, server_default='false'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_agents_restaurant_id'), 'agents', ['restaurant_id'])
    op.create_index(op.f('ix_agents_is_active'), 'agents', ['is_active'])
    op.create_index(op.f('ix_agents_whatsapp_number'), 'agents', ['whatsapp_number'])
    op.create_index(op.f('ix_agents_evolution_api_instance'), 'agents', ['evolution_api_instance'])

    op.create_table('fallback_scenarios',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('scenario_name', sa.String(length=100), nullable=False),
        sa.Column('trigger_conditions', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('custom_message', sa.Text(), nullable=True),
        sa.Column('auto_trigger', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('priority_level', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_fallback_scenarios_restaurant_id'), 'fallback_scenarios', ['restaurant_id'])
    op.create_index(op.f('ix_fallback_scenarios_agent_id'), 'fallback_scenarios', ['agent_id'])

    op.create_table('conversations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('customer_phone', sa.String(length=30), nullable=False),
        sa.Column('customer_name', sa.String(length=100), nullable=True),
        sa.Column('status', sa.Enum('active', 'paused', 'human_handoff', 'ended', name='conversationstatus'), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False, server_default='whatsapp'),
        sa.Column('assigned_human_id', sa.UUID(), nullable=True),
        _timestamp('started_at'),
        _timestamp('last_message_at', nullable=True),
        _timestamp('ended_at', nullable=True),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id']),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_conversations_agent_id'), 'conversations', ['agent_id'])
    op.create_index(op.f('ix_conversations_restaurant_id'), 'conversations', ['restaurant_id'])
    op.create_index(op.f('ix_conversations_customer_phone'), 'conversations', ['customer_phone'])
    # One active conversation per agent and phone
    op.create_index(
        'uq_conversations_active_agent_phone',
        'conversations',
        ['agent_id', 'customer_phone'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table('messages',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=False),
        sa.Column('sender_type', sa.Enum('customer', 'agent', 'human', name='sendertype'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('message_type', sa.Enum('text', 'image', 'audio', name='messagetype'), nullable=False),
        sa.Column('whatsapp_message_id', sa.String(length=100), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_messages_conversation_id'), 'messages', ['conversation_id'])
    op.create_index(op.f('ix_messages_whatsapp_message_id'), 'messages', ['whatsapp_message_id'])
    op.create_index(op.f('ix_messages_created_at'), 'messages', ['created_at'])

    # ==========================================================================
    # Orders
    # ==========================================================================

    op.create_table('customers',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_customers_phone'), 'customers', ['phone'], unique=True)

    op.create_table('orders',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('customer_id', sa.UUID(), nullable=False),
        sa.Column('status', sa.Enum('pending', 'confirmed', 'preparing', 'ready', 'delivered', 'cancelled', name='orderstatus'), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=50), nullable=False, server_default='cash'),
        sa.Column('payment_status', sa.Enum('pending', 'paid', 'failed', 'refunded', name='paymentstatus'), nullable=False),
        sa.Column('delivery_type', sa.Enum('delivery', 'pickup', name='deliverytype'), nullable=False),
        sa.Column('delivery_zone_id', sa.UUID(), nullable=True),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['delivery_zone_id'], ['delivery_zones.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_orders_restaurant_id'), 'orders', ['restaurant_id'])
    op.create_index(op.f('ix_orders_customer_id'), 'orders', ['customer_id'])
    op.create_index(op.f('ix_orders_status'), 'orders', ['status'])
    op.create_index(op.f('ix_orders_created_at'), 'orders', ['created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('order_id', sa.UUID(), nullable=False),
        sa.Column('product_id', sa.UUID(), nullable=False),
        sa.Column('product_name', sa.String(length=200), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_order_items_order_id'), 'order_items', ['order_id'])

    # ==========================================================================
    # Analytics
    # ==========================================================================

    op.create_table('sentiment_analytics',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=False),
        sa.Column('message_id', sa.UUID(), nullable=True),
        sa.Column('customer_phone', sa.String(length=30), nullable=False),
        sa.Column('sentiment_score', sa.Float(), nullable=False),
        sa.Column('sentiment_label', sa.Enum('negative', 'neutral', 'positive', name='sentimentlabel'), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('emotional_indicators', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('response_strategy', sa.Enum('empathetic', 'promotional', 'informational', name='responsestrategy'), nullable=False),
        sa.Column('escalation_triggered', sa.Boolean(), nullable=False, server_default='false'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_sentiment_analytics_restaurant_id'), 'sentiment_analytics', ['restaurant_id'])
    op.create_index(op.f('ix_sentiment_analytics_conversation_id'), 'sentiment_analytics', ['conversation_id'])
    op.create_index(op.f('ix_sentiment_analytics_created_at'), 'sentiment_analytics', ['created_at'])

    op.create_table('ai_learning_interactions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=False),
        sa.Column('customer_phone', sa.String(length=30), nullable=False),
        sa.Column('interaction_type', sa.Enum('order', 'complaint', 'compliment', 'question', name='interactiontype'), nullable=False),
        sa.Column('user_message', sa.Text(), nullable=False),
        sa.Column('ai_response', sa.Text(), nullable=False),
        sa.Column('sentiment_score', sa.Float(), nullable=True),
        sa.Column('context_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('learning_tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id']),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ai_learning_interactions_restaurant_id'), 'ai_learning_interactions', ['restaurant_id'])
    op.create_index(op.f('ix_ai_learning_interactions_conversation_id'), 'ai_learning_interactions', ['conversation_id'])
    op.create_index(op.f('ix_ai_learning_interactions_created_at'), 'ai_learning_interactions', ['created_at'])

    op.create_table('ai_learning_patterns',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('pattern_type', sa.String(length=100), nullable=False),
        sa.Column('pattern_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('frequency_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('confidence_level', sa.Float(), nullable=False, server_default='0.5'),
        _timestamp('last_occurrence'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('restaurant_id', 'pattern_type', name='uq_learning_pattern_type')
    )
    op.create_index(op.f('ix_ai_learning_patterns_restaurant_id'), 'ai_learning_patterns', ['restaurant_id'])
    op.create_index(op.f('ix_ai_learning_patterns_frequency_count'), 'ai_learning_patterns', ['frequency_count'])

    op.create_table('ab_test_variants',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('agent_id', sa.UUID(), nullable=False),
        sa.Column('test_name', sa.String(length=100), nullable=False),
        sa.Column('variant_name', sa.String(length=100), nullable=False),
        sa.Column('response_template', sa.Text(), nullable=False),
        sa.Column('traffic_percentage', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        _timestamp('start_date'),
        _timestamp('end_date', nullable=True),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ab_test_variants_restaurant_id'), 'ab_test_variants', ['restaurant_id'])
    op.create_index(op.f('ix_ab_test_variants_agent_id'), 'ab_test_variants', ['agent_id'])
    op.create_index(op.f('ix_ab_test_variants_test_name'), 'ab_test_variants', ['test_name'])

    op.create_table('ab_test_results',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('restaurant_id', sa.UUID(), nullable=False),
        sa.Column('variant_id', sa.UUID(), nullable=False),
        sa.Column('conversation_id', sa.UUID(), nullable=True),
        sa.Column('customer_phone', sa.String(length=30), nullable=True),
        sa.Column('response_used', sa.Text(), nullable=True),
        sa.Column('user_satisfaction', sa.Float(), nullable=True),
        sa.Column('conversion_achieved', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('interaction_duration_seconds', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['restaurant_id'], ['restaurants.id']),
        sa.ForeignKeyConstraint(['variant_id'], ['ab_test_variants.id']),
        sa.ForeignKeyConstraint(['conversation_id'], ['conversations.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ab_test_results_restaurant_id'), 'ab_test_results', ['restaurant_id'])
    op.create_index(op.f('ix_ab_test_results_variant_id'), 'ab_test_results', ['variant_id'])


def downgrade() -> None:
    op.drop_table('ab_test_results')
    op.drop_table('ab_test_variants')
    op.drop_table('ai_learning_patterns')
    op.drop_table('ai_learning_interactions')
    op.drop_table('sentiment_analytics')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('customers')
    op.drop_table('messages')
    op.drop_table('conversations')
    op.drop_table('fallback_scenarios')
    op.drop_table('agents')
    op.drop_table('dynamic_promotions')
    op.drop_table('product_inventory')
    op.drop_table('delivery_zones')
    op.drop_table('payment_methods')
    op.drop_table('modifiers')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('restaurants')

    for enum_name in (
        'interactiontype', 'responsestrategy', 'sentimentlabel', 'deliverytype',
        'paymentstatus', 'orderstatus', 'messagetype', 'sendertype',
        'conversationstatus', 'discounttype',
    ):
        op.execute(f'DROP TYPE IF EXISTS {enum_name}')
